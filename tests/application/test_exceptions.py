"""アプリケーション層の例外のテスト

Requirements: 5.1
"""

import pytest

from app.application.exceptions import (
    ApplicationError,
    InvalidParamError,
    PhotoValidationRejectedError,
    UpstreamComputationError,
)


@pytest.mark.unit
class TestApplicationErrors:
    def test_invalid_param(self):
        error = InvalidParamError(reason="画像が空です", param_name="image")
        assert isinstance(error, ApplicationError)
        assert (error.error_code, error.status) == (105, 400)
        assert error.details == {"param": "image"}
        assert str(error) == "画像が空です"

    def test_invalid_param_without_name(self):
        assert InvalidParamError(reason="不正です").details is None

    def test_photo_rejected(self):
        error = PhotoValidationRejectedError(
            rejection_reason="Please retake.",
            expected_view="body_side",
            detected_view="body_back",
            error_type="INVALID_VIEW",
            quality_score=0.8,
            issues=[],
            warnings=["Image resolution is lower than recommended."],
        )
        assert (error.error_code, error.status) == (201, 422)
        assert error.details is not None
        assert error.details["detected_view"] == "body_back"
        assert error.details["warnings"] == ["Image resolution is lower than recommended."]

    def test_upstream_is_retryable(self):
        error = UpstreamComputationError(message="body scan timed out after 45.0s", timed_out=True)
        assert (error.error_code, error.status) == (202, 502)
        assert error.details == {
            "message": "body scan timed out after 45.0s",
            "timed_out": True,
            "retryable": True,
        }
