"""
场景回放脚本

读取 JSON 场景文件，用手动调度器和虚拟时钟驱动自动化引擎，逐步打印自动化状态。
不需要摄像头或真实的窗口/激活后端，便于复现和调试触发逻辑。

场景格式:
    {
        "settings": {"detection": {...}, "apps": {...}},
        "failTargets": ["Slack"],
        "unsupportedPlatform": false,
        "steps": [
            {"type": "window", "name": "League of Legends", "title": "..."},
            {"type": "presence", "faces": [{"confidence": 0.9}], "motionScore": 0.2},
            {"type": "advance", "seconds": 5},
            {"type": "force"}
        ]
    }

用法:
    python replay_scenario.py <场景文件> [--output 输出文件] [--log-level DEBUG]

示例:
    python replay_scenario.py scenarios/visitor_during_game.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

# 添加项目根目录到路径
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv
load_dotenv(PROJECT_ROOT / ".env")

from src.core import ActivationFailedError, MoViewError, UnsupportedPlatformError, get_logger, setup_logging
from src.core.interfaces import IActivationBackend
from src.custos import (
    AutomationEngine,
    BodyObservation,
    FaceObservation,
    ManualScheduler,
    RawDetectionFrame,
    RawWindowObservation,
)
from src.settings import InMemorySettingsStore, WorkTarget

logger = get_logger(__name__)


class RecordingBackend(IActivationBackend):
    """记录激活请求的后端，可配置失败的目标"""

    def __init__(self, fail_targets: Optional[list[str]] = None, unsupported: bool = False) -> None:
        self.fail_targets = set(fail_targets or [])
        self.unsupported = unsupported
        self.activated: list[str] = []

    def activate(self, target: WorkTarget) -> None:
        if self.unsupported:
            raise UnsupportedPlatformError("回放场景模拟不支持的平台")
        if target.display_name in self.fail_targets:
            raise ActivationFailedError(f"模拟激活失败: {target.display_name}")
        self.activated.append(target.display_name)


def parse_args() -> argparse.Namespace:
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        description="场景回放脚本 - 用虚拟时钟驱动自动化引擎"
    )
    parser.add_argument(
        "scenario",
        type=str,
        help="场景 JSON 文件路径"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="把每一步的状态保存为 JSON 文件"
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str,
        default=None,
        help="日志级别 (默认: MOVIEW_LOG_LEVEL 或 INFO)"
    )
    return parser.parse_args()


def build_frame(step: dict[str, Any], scheduler: ManualScheduler) -> RawDetectionFrame:
    """由场景步骤构建检测帧"""
    faces = [
        FaceObservation(
            confidence=float(face.get("confidence", 0.0)),
            embedding=face.get("embedding"),
        )
        for face in step.get("faces", [])
    ]
    bodies = [
        BodyObservation(confidence=float(body.get("confidence", 0.0)))
        for body in step.get("bodies", [])
    ]
    return RawDetectionFrame(
        faces=faces,
        bodies=bodies,
        motion_score=step.get("motionScore"),
        timestamp=scheduler.now(),
    )


def build_window(step: dict[str, Any]) -> Optional[RawWindowObservation]:
    """由场景步骤构建窗口观察结果，none=true 表示无法获取"""
    if step.get("none"):
        return None
    return RawWindowObservation(
        name=step.get("name"),
        title=step.get("title"),
        bundle_id=step.get("bundleId"),
        process_path=step.get("processPath"),
    )


def run_scenario(scenario: dict[str, Any]) -> list[dict[str, Any]]:
    """
    回放场景

    Args:
        scenario: 场景定义

    Returns:
        每一步之后的状态记录
    """
    scheduler = ManualScheduler()
    backend = RecordingBackend(
        fail_targets=scenario.get("failTargets"),
        unsupported=bool(scenario.get("unsupportedPlatform", False)),
    )
    store = InMemorySettingsStore(scenario.get("settings"))
    engine = AutomationEngine(store, backend, scheduler=scheduler, clock=scheduler.now)

    records = []
    for index, step in enumerate(scenario.get("steps", []), start=1):
        step_type = step.get("type")
        record: dict[str, Any] = {"step": index, "type": step_type}

        if step_type == "presence":
            state = engine.on_presence_update(build_frame(step, scheduler))
        elif step_type == "window":
            state = engine.on_window_update(build_window(step))
        elif step_type == "advance":
            scheduler.advance(float(step.get("seconds", 0)))
            state = engine.get_automation_state()
        elif step_type == "force":
            result = engine.force_switch()
            record["activation"] = {
                "success": result.success,
                "target": result.target.display_name if result.target else None,
                "error_kind": result.error_kind.value if result.error_kind else None,
                "attempted": result.attempted,
            }
            state = engine.get_automation_state()
        else:
            logger.warning(f"未知的步骤类型，已跳过: {step_type}")
            continue

        record["time"] = scheduler.now().isoformat()
        record["state"] = state.to_dict()
        records.append(record)

    engine.close()
    logger.info(f"回放完成: {len(records)} 步, 激活记录: {backend.activated}")
    return records


def main():
    """主函数"""
    args = parse_args()
    setup_logging(level=args.log_level)

    scenario_path = Path(args.scenario)
    if not scenario_path.exists():
        print(f"错误: 场景文件不存在: {scenario_path}")
        return 1

    try:
        with open(scenario_path, "r", encoding="utf-8") as f:
            scenario = json.load(f)
        records = run_scenario(scenario)
    except (json.JSONDecodeError, MoViewError) as e:
        print(f"错误: 场景回放失败: {e}")
        return 1

    print("=" * 60)
    print(f"       场景回放 - {scenario_path.name}")
    print("=" * 60)
    for record in records:
        state = record["state"]
        presence = state["presence"]
        active_app = state["active_app"] or {}
        print(
            f"[{record['step']:>3}] {record['type']:<8} "
            f"visitor={presence['has_visitor']!s:<5} streak={state['visitor_streak']} "
            f"game={active_app.get('is_game_active', False)!s:<5} "
            f"phase={state['phase']:<7} last_switch={state['last_switch_at']}"
        )
        if state["errors"]:
            print(f"      错误: {state['errors']}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False, indent=2)
        print(f"\n结果已保存: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
