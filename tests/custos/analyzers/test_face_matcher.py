"""
SafeFaceMatcher 单元测试
"""

import math

import pytest

from src.core.exceptions import NoFaceDetectedError
from src.custos.analyzers import SafeFaceMatcher, cosine_similarity, select_best_face
from src.custos.models import DetectionResult, FaceObservation
from src.settings import normalize_safe_face


def make_profile(profile_id: str, descriptor: list):
    return normalize_safe_face({"id": profile_id, "label": profile_id, "descriptor": descriptor})


class TestCosineSimilarity:
    """余弦相似度测试"""

    @pytest.mark.parametrize("vector", [
        [1.0, 0.0, 0.0],
        [0.3, -0.7, 2.5, 9.1],
        [1e-6, 1e-6],
    ])
    def test_self_similarity_is_one(self, vector):
        """测试非零向量与自身相似度为 1"""
        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    def test_zero_vector_is_zero(self):
        """测试与零向量相似度为 0"""
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0

    def test_empty_or_none_is_zero(self):
        """测试空向量相似度为 0"""
        assert cosine_similarity([], [1.0]) == 0.0
        assert cosine_similarity(None, [1.0]) == 0.0

    def test_opposite_vectors(self):
        """测试相反向量相似度为 -1"""
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_different_lengths_compare_common_prefix(self):
        """测试长度不一致时只比较公共前缀"""
        assert cosine_similarity([1.0, 0.0, 5.0], [1.0, 0.0]) == pytest.approx(1.0)


class TestSafeFaceMatcher:
    """安全人脸匹配器测试"""

    def test_matching_face_recognized(self):
        """测试相似度达到阈值时命中"""
        matcher = SafeFaceMatcher()
        faces = [FaceObservation(confidence=0.9, embedding=[0.95, math.sqrt(1 - 0.95 ** 2)])]

        result = matcher.match(faces, [make_profile("me", [1.0, 0.0])], threshold=0.42)

        assert result.recognized is True
        assert result.matched_count == 1
        assert result.matched_profile_ids == ["me"]
        assert result.best_scores[0] == pytest.approx(0.95)

    def test_below_threshold_not_recognized(self):
        """测试相似度低于阈值不命中"""
        matcher = SafeFaceMatcher()
        faces = [FaceObservation(confidence=0.9, embedding=[0.1, math.sqrt(0.99)])]

        result = matcher.match(faces, [make_profile("me", [1.0, 0.0])], threshold=0.5)

        assert result.recognized is False
        assert result.matched_count == 0

    def test_picks_best_profile(self):
        """测试选择相似度最高的档案"""
        matcher = SafeFaceMatcher()
        faces = [FaceObservation(confidence=0.9, embedding=[0.0, 1.0])]
        profiles = [make_profile("a", [1.0, 0.0]), make_profile("b", [0.1, 1.0])]

        result = matcher.match(faces, profiles, threshold=0.5)

        assert result.matched_profile_ids == ["b"]

    def test_zero_vector_profile_never_matches(self):
        """测试零向量档案即使阈值为 0 也不命中"""
        matcher = SafeFaceMatcher()
        faces = [FaceObservation(confidence=0.9, embedding=[1.0, 0.0])]

        result = matcher.match(faces, [make_profile("zero", [0.0, 0.0])], threshold=0.0)

        assert result.recognized is False

    def test_face_without_embedding_skipped(self):
        """测试没有特征向量的人脸不参与比对"""
        matcher = SafeFaceMatcher()
        faces = [FaceObservation(confidence=0.9), FaceObservation(confidence=0.8, embedding=[])]

        result = matcher.match(faces, [make_profile("me", [1.0, 0.0])], threshold=0.0)

        assert result.recognized is False
        assert result.best_scores == []
        assert matcher.stats["total_faces"] == 0

    def test_matched_ids_deduplicated(self):
        """测试命中的档案 ID 去重"""
        matcher = SafeFaceMatcher()
        faces = [
            FaceObservation(confidence=0.9, embedding=[1.0, 0.0]),
            FaceObservation(confidence=0.8, embedding=[0.9, 0.1]),
        ]

        result = matcher.match(faces, [make_profile("me", [1.0, 0.0])], threshold=0.5)

        assert result.matched_count == 2
        assert result.matched_profile_ids == ["me"]

    def test_no_profiles(self):
        """测试没有档案时不命中"""
        result = SafeFaceMatcher().match(
            [FaceObservation(confidence=0.9, embedding=[1.0])], [], threshold=0.0,
        )
        assert result.recognized is False

    def test_stats_tracking(self):
        """测试统计跟踪"""
        matcher = SafeFaceMatcher()
        faces = [
            FaceObservation(confidence=0.9, embedding=[1.0, 0.0]),
            FaceObservation(confidence=0.9, embedding=[0.0, 1.0]),
        ]
        matcher.match(faces, [make_profile("me", [1.0, 0.0])], threshold=0.5)

        assert matcher.stats == {"total_faces": 2, "matched_faces": 1}

        matcher.reset_stats()
        assert matcher.stats["total_faces"] == 0


class TestSelectBestFace:
    """安全人脸采集选择测试"""

    def test_picks_highest_confidence(self):
        """测试选择置信度最高的人脸"""
        detection = DetectionResult(faces=[
            FaceObservation(confidence=0.7, embedding=[1.0]),
            FaceObservation(confidence=0.95, embedding=[2.0]),
            FaceObservation(confidence=0.99),
        ])

        face = select_best_face(detection)

        assert face.confidence == 0.95

    def test_requires_confidence_above_minimum(self):
        """测试置信度必须高于 0.6"""
        detection = DetectionResult(faces=[FaceObservation(confidence=0.6, embedding=[1.0])])

        with pytest.raises(NoFaceDetectedError):
            select_best_face(detection)

    def test_no_faces_raises(self):
        """测试没有人脸时抛出异常"""
        with pytest.raises(NoFaceDetectedError) as exc_info:
            select_best_face(DetectionResult())

        assert exc_info.value.details["face_count"] == 0
