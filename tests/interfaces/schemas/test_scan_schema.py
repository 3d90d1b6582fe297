"""スキャン系レスポンススキーマのユニットテスト

Requirements: 2.3, 3.3
"""

import pytest
from pydantic import ValidationError

from app.interfaces.schemas.scan import (
    BodyTypeProbabilitySchema,
    CacheKeyResponse,
    OverallScoreSchema,
    PhotoValidationResponse,
    PotentialRangeSchema,
    ScanMetaSchema,
)


def _validation(**overrides) -> dict:
    values = {
        "is_valid": True,
        "expected_view": "face_front",
        "detected_view": "face_front",
        "pose": {"yaw": 1.0, "pitch": 0.0, "roll": 0.0, "confidence": 0.9},
        "quality_score": 0.85,
        "issues": [],
        "warnings": [],
    }
    values.update(overrides)
    return values


@pytest.mark.unit
class TestPhotoValidationResponse:
    """PhotoValidationResponse スキーマのテスト"""

    def test_ok_response(self):
        response = PhotoValidationResponse(**_validation())
        assert response.is_valid is True
        assert response.rejection_reason is None
        assert response.error_type is None

    def test_tuple_issues_accepted(self):
        """ドメインモデルの tuple をそのまま受け付ける"""
        response = PhotoValidationResponse(**_validation(issues=("a", "b"), warnings=("c",)))
        assert response.issues == ["a", "b"]
        assert response.warnings == ["c"]

    def test_pose_confidence_out_of_range(self):
        with pytest.raises(ValidationError):
            PhotoValidationResponse(**_validation(
                pose={"yaw": 0.0, "pitch": 0.0, "roll": 0.0, "confidence": 1.5}))


@pytest.mark.unit
class TestScoreSchemas:
    """スコア関連スキーマのテスト"""

    def test_potential_range_bounds(self):
        assert PotentialRangeSchema(min=0.0, max=10.0).max == 10.0
        with pytest.raises(ValidationError):
            PotentialRangeSchema(min=-0.1, max=5.0)
        with pytest.raises(ValidationError):
            PotentialRangeSchema(min=5.0, max=10.5)

    def test_overall(self):
        overall = OverallScoreSchema(
            current_score10=6.4,
            potential_range={"min": 6.4, "max": 7.4},
            confidence=0.82,
            summary="Overall face score 6.4/10.",
            raw=0.61,
        )
        assert overall.potential_range.min == 6.4

    def test_body_type_probability_range(self):
        with pytest.raises(ValidationError):
            BodyTypeProbabilitySchema(type="Natural", probability=1.2)


@pytest.mark.unit
class TestCacheSchemas:
    """キャッシュ関連スキーマのテスト"""

    def test_meta_default_not_cached(self):
        meta = ScanMetaSchema(
            content_hash="a" * 64,
            options_hash="b" * 64,
            schema_version="2.0.0",
            seed=123,
        )
        assert meta.cached is False

    def test_cache_key_requires_cached(self):
        with pytest.raises(ValidationError):
            CacheKeyResponse(
                content_hash="a" * 64,
                options_hash="b" * 64,
                schema_version="2.0.0",
                seed=1,
            )  # type: ignore[call-arg]
