"""
配置清洗单元测试
"""

import itertools
import math
import random
from datetime import datetime

import pytest

from src.settings import (
    DEFAULT_SETTINGS,
    PLACEHOLDER_LABEL,
    AppSettings,
    ListMode,
    MatchStrategy,
    extract_win_process_name,
    merge_app_settings,
    merge_detection_settings,
    normalize_safe_face,
    sanitize_list,
    sanitize_region,
    sanitize_settings,
    sanitize_work_target,
)
from src.settings import sanitizer as sanitizer_module


MALFORMED_NUMBERS = [
    float("nan"),
    float("inf"),
    float("-inf"),
    1e308,
    -1e308,
    -5,
    0,
    "abc",
    None,
]

FLOAT_BOUNDS = {
    "presenceThreshold": (0.0, 1.0),
    "faceRecognitionThreshold": (0.0, 1.0),
    "motionSensitivity": (0.01, 1.0),
}

INT_MINIMUMS = {
    "framesBeforeTrigger": 1,
    "cooldownSeconds": 1,
    "sampleIntervalMs": 50,
}


@pytest.fixture
def mocked_uuid(monkeypatch):
    """把 uuid4 替换为可预测的序列"""
    counter = itertools.count(1)
    monkeypatch.setattr(sanitizer_module, "uuid4", lambda: f"uuid-{next(counter)}")


class TestSanitizeList:
    """规则列表清洗测试"""

    def test_trims_and_deduplicates(self):
        """测试去空白并去重(区分大小写)"""
        result = sanitize_list(["  Foo ", "bar", "", "foo", "BAR"])
        assert result == ["Foo", "bar", "foo", "BAR"]

    def test_drops_none_entries(self):
        """测试丢弃 None"""
        assert sanitize_list(["a", None, " a "]) == ["a"]

    @pytest.mark.parametrize("value", [None, "league", 42])
    def test_non_list_returns_empty(self, value):
        """测试非列表输入返回空列表"""
        assert sanitize_list(value) == []


class TestSanitizeSettings:
    """完整配置清洗测试"""

    def test_clamps_thresholds_and_normalizes_safe_faces(self, mocked_uuid):
        """测试阈值截断与安全人脸规范化"""
        detection = DEFAULT_SETTINGS.detection.model_dump(by_alias=True)
        detection.update({
            "presenceThreshold": 2,
            "framesBeforeTrigger": 0,
            "cooldownSeconds": 0,
            "sampleIntervalMs": 20,
            "faceRecognitionThreshold": -1,
            "motionSensitivity": 0,
            "safeFaces": [
                {"id": "", "label": "  Myself  ", "descriptor": [0.1, 0.2], "createdAt": 0},
            ],
        })
        dirty = {
            "detection": detection,
            "apps": {
                "gameBlacklist": ["  League  ", ""],
                "gameWhitelist": ["OBS  "],
                "workTargets": [
                    {
                        "name": "  Visual Studio Code  ",
                        "macBundleId": " com.microsoft.VSCode ",
                        "macProcessName": " ",
                        "winCommand": " Code ",
                        "winProcessName": "  ",
                        "args": [" --flag ", ""],
                    }
                ],
            },
        }

        sanitized = sanitize_settings(dirty)

        assert sanitized.detection.presence_threshold == 1
        assert sanitized.detection.frames_before_trigger == 1
        assert sanitized.detection.cooldown_seconds == 1
        assert sanitized.detection.sample_interval_ms == 50
        assert sanitized.detection.face_recognition_threshold == 0
        assert sanitized.detection.motion_sensitivity == 0.01
        assert len(sanitized.detection.safe_faces) == 1
        assert sanitized.detection.safe_faces[0].id == "uuid-1"
        assert sanitized.detection.safe_faces[0].label == "Myself"
        assert sanitized.apps.game_blacklist == ["League"]
        assert sanitized.apps.game_whitelist == ["OBS"]

        target = sanitized.apps.work_targets[0]
        assert target.name == "Visual Studio Code"
        assert target.mac_bundle_id == "com.microsoft.VSCode"
        assert target.mac_process_name == "Visual Studio Code"
        assert target.win_process_name == "Code"
        assert target.args == ["--flag"]

    def test_none_returns_defaults(self):
        """测试空输入返回默认配置"""
        assert sanitize_settings(None) == DEFAULT_SETTINGS

    def test_defaults(self):
        """测试默认值"""
        detection = DEFAULT_SETTINGS.detection
        assert detection.enable_auto_switch is False
        assert detection.presence_threshold == 0.6
        assert detection.frames_before_trigger == 2
        assert detection.cooldown_seconds == 15
        assert detection.sample_interval_ms == 100
        assert detection.face_recognition_threshold == 0.42
        assert detection.motion_sensitivity == 0.05
        assert DEFAULT_SETTINGS.apps.match_strategy == MatchStrategy.ANY
        assert DEFAULT_SETTINGS.apps.list_mode == ListMode.BLACKLIST

    def test_accepts_snake_case_keys(self):
        """测试同时接受 snake_case 键"""
        sanitized = sanitize_settings({"detection": {"cooldown_seconds": 30}})
        assert sanitized.detection.cooldown_seconds == 30

    def test_unknown_enums_fall_back(self):
        """测试无法识别的枚举值回退为默认值"""
        sanitized = sanitize_settings({
            "apps": {"matchStrategy": "fuzzy", "listMode": "greylist"},
        })
        assert sanitized.apps.match_strategy == MatchStrategy.ANY
        assert sanitized.apps.list_mode == ListMode.BLACKLIST

    def test_known_enums_kept(self):
        """测试合法枚举值被保留"""
        sanitized = sanitize_settings({
            "apps": {"matchStrategy": "title", "listMode": "whitelist"},
        })
        assert sanitized.apps.match_strategy == MatchStrategy.TITLE
        assert sanitized.apps.list_mode == ListMode.WHITELIST

    def test_integer_fields_round_half_up(self):
        """测试整数字段四舍五入"""
        sanitized = sanitize_settings({
            "detection": {"framesBeforeTrigger": 2.5, "cooldownSeconds": 14.4},
        })
        assert sanitized.detection.frames_before_trigger == 3
        assert sanitized.detection.cooldown_seconds == 14

    def test_duplicate_safe_face_ids_reassigned(self, mocked_uuid):
        """测试重复的安全人脸 ID 被重新分配"""
        sanitized = sanitize_settings({
            "detection": {
                "safeFaces": [
                    {"id": "a", "label": "A", "descriptor": [1, 0]},
                    {"id": "a", "label": "B", "descriptor": [0, 1]},
                ],
            },
        })
        ids = [face.id for face in sanitized.detection.safe_faces]
        assert ids[0] == "a"
        assert ids[1] != "a"
        assert len(set(ids)) == 2

    def test_unidentifiable_work_targets_dropped(self):
        """测试缺少标识字段的工作目标被丢弃"""
        sanitized = sanitize_settings({
            "apps": {"workTargets": [{"name": "  "}, {"winCommand": "slack"}, "junk"]},
        })
        assert len(sanitized.apps.work_targets) == 1
        assert sanitized.apps.work_targets[0].win_process_name == "slack"


class TestSanitizerProperties:
    """清洗函数的全域与幂等性质"""

    @pytest.mark.parametrize("field", sorted(FLOAT_BOUNDS))
    @pytest.mark.parametrize("value", MALFORMED_NUMBERS)
    def test_float_fields_within_bounds(self, field, value):
        """测试浮点字段总在声明范围内"""
        sanitized = sanitize_settings({"detection": {field: value}})
        lower, upper = FLOAT_BOUNDS[field]
        result = sanitized.detection.model_dump(by_alias=True)[field]

        assert math.isfinite(result)
        assert lower <= result <= upper

    @pytest.mark.parametrize("field", sorted(INT_MINIMUMS))
    @pytest.mark.parametrize("value", MALFORMED_NUMBERS)
    def test_integer_fields_at_least_minimum(self, field, value):
        """测试整数字段总不小于下限"""
        sanitized = sanitize_settings({"detection": {field: value}})
        result = sanitized.detection.model_dump(by_alias=True)[field]

        assert isinstance(result, int)
        assert result >= INT_MINIMUMS[field]

    def test_nan_uses_default_and_infinity_clamps(self):
        """测试 NaN 使用默认值，无穷截断到边界"""
        nan_settings = sanitize_settings({"detection": {"presenceThreshold": float("nan")}})
        inf_settings = sanitize_settings({"detection": {"presenceThreshold": float("inf")}})

        assert nan_settings.detection.presence_threshold == 0.6
        assert inf_settings.detection.presence_threshold == 1.0

    def test_random_sweep_is_total_and_idempotent(self):
        """测试随机输入下清洗总是成功且幂等"""
        rng = random.Random(20240615)
        specials = [float("nan"), float("inf"), float("-inf")]

        def random_number():
            if rng.random() < 0.3:
                return rng.choice(specials)
            return rng.uniform(-1e6, 1e6)

        for _ in range(200):
            raw = {
                "detection": {
                    **{field: random_number() for field in FLOAT_BOUNDS},
                    **{field: random_number() for field in INT_MINIMUMS},
                    "motionRegion": {
                        "x": random_number(),
                        "y": random_number(),
                        "width": random_number(),
                        "height": random_number(),
                    },
                },
            }

            once = sanitize_settings(raw)
            twice = sanitize_settings(once)

            assert twice == once
            for field, (lower, upper) in FLOAT_BOUNDS.items():
                value = once.detection.model_dump(by_alias=True)[field]
                assert lower <= value <= upper
            for field, minimum in INT_MINIMUMS.items():
                assert once.detection.model_dump(by_alias=True)[field] >= minimum
            region = once.detection.motion_region
            assert 0 <= region.x <= 1 and 0 <= region.y <= 1
            assert 0 < region.width <= 1 and 0 < region.height <= 1

    def test_idempotent_for_full_document(self, mocked_uuid):
        """测试完整配置的幂等性"""
        raw = {
            "detection": {
                "enableAutoSwitch": True,
                "safeFaces": [{"label": " me ", "descriptor": [1, "x", None], "createdAt": 1700000000000}],
                "cameraDeviceId": "  cam-1 ",
            },
            "apps": {
                "gameBlacklist": ["steam", " steam "],
                "workTargets": [{"name": "Slack", "args": [" -a "]}],
                "matchStrategy": "process",
            },
        }

        once = sanitize_settings(raw)

        assert sanitize_settings(once) == once
        assert sanitize_settings(once.model_dump(by_alias=True)) == once
        assert once.detection.safe_faces[0].descriptor == [1.0, 0.0, 0.0]
        assert once.detection.camera_device_id == "cam-1"

    def test_sanitized_settings_are_frozen(self):
        """测试配置快照不可修改"""
        settings = sanitize_settings(None)
        with pytest.raises(Exception):
            settings.detection.cooldown_seconds = 99


class TestSanitizeParts:
    """单项清洗函数测试"""

    @pytest.mark.parametrize("command, expected", [
        ('"C:\\Program Files\\Microsoft VS Code\\Code.exe"', "Code"),
        ("/usr/bin/slack", "slack"),
        ("notepad.EXE", "notepad"),
        ("", None),
        (None, None),
    ])
    def test_extract_win_process_name(self, command, expected):
        """测试从启动命令推导进程名"""
        assert extract_win_process_name(command) == expected

    def test_extract_win_process_name_fallback(self):
        """测试推导失败时返回 fallback"""
        assert extract_win_process_name("C:\\tools\\", fallback="tool") == "tool"

    def test_normalize_safe_face_placeholder_label(self, mocked_uuid):
        """测试空名称使用占位名"""
        profile = normalize_safe_face({"label": "   ", "descriptor": [0.5]})
        assert profile.label == PLACEHOLDER_LABEL
        assert profile.id == "uuid-1"

    def test_normalize_safe_face_millisecond_timestamp(self):
        """测试毫秒时间戳被正确转换"""
        profile = normalize_safe_face({"id": "x", "createdAt": 1700000000000})
        assert profile.created_at == datetime.fromtimestamp(1700000000)

    @pytest.mark.parametrize("region, expected", [
        ({"x": -1, "y": 2, "width": 0, "height": -3}, (0.0, 1.0, 1.0, 1.0)),
        ({"x": float("nan"), "y": 0.25, "width": 0.5, "height": float("inf")}, (0.0, 0.25, 0.5, 1.0)),
        (None, (0.0, 0.0, 1.0, 1.0)),
    ])
    def test_sanitize_region(self, region, expected):
        """测试检测区域清洗"""
        result = sanitize_region(region)
        assert (result.x, result.y, result.width, result.height) == expected

    def test_sanitize_work_target_keeps_explicit_process_names(self):
        """测试保留显式设置的进程名"""
        target = sanitize_work_target({
            "name": "Code",
            "macProcessName": "Electron",
            "winCommand": "code.cmd",
            "winProcessName": "Code.exe",
        })
        assert target.mac_process_name == "Electron"
        assert target.win_process_name == "Code.exe"

    def test_sanitize_work_target_returns_none(self):
        """测试无标识字段返回 None"""
        assert sanitize_work_target({"args": ["--x"]}) is None


class TestMergeSettings:
    """部分更新合并测试"""

    def test_merge_detection_keeps_safe_faces_normalized(self, mocked_uuid):
        """测试合并检测参数时安全人脸仍被规范化"""
        merged = merge_detection_settings(DEFAULT_SETTINGS.detection, {
            "presenceThreshold": 0.8,
            "safeFaces": [{"id": "", "label": " user ", "descriptor": [1, 0], "createdAt": 0}],
        })

        assert merged.presence_threshold == 0.8
        assert merged.safe_faces[0].id == "uuid-1"
        assert merged.safe_faces[0].label == "user"

    def test_merge_app_settings_sanitizes_lists(self):
        """测试合并应用规则时清洗列表"""
        merged = merge_app_settings(DEFAULT_SETTINGS.apps, {
            "gameBlacklist": [" game ", "GAME"],
            "gameWhitelist": [" tool "],
        })

        assert merged.game_blacklist == ["game", "GAME"]
        assert merged.game_whitelist == ["tool"]

    def test_merge_without_partial_returns_current(self):
        """测试空更新返回原配置"""
        current = sanitize_settings({"detection": {"cooldownSeconds": 30}}).detection
        assert merge_detection_settings(current, None) is current

    def test_merge_keeps_untouched_fields(self):
        """测试未更新的字段保持不变"""
        current = sanitize_settings({"detection": {"cooldownSeconds": 30}}).detection
        merged = merge_detection_settings(current, {"framesBeforeTrigger": 4})

        assert merged.cooldown_seconds == 30
        assert merged.frames_before_trigger == 4
        assert isinstance(sanitize_settings(AppSettings(detection=merged)), AppSettings)
