from dataclasses import dataclass
from typing import Any


@dataclass
class ApplicationError(Exception):
    """アプリケーション層の基底例外クラス"""
    reason: str
    error_code: int = 100
    status: int = 400
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.reason


class InvalidParamError(ApplicationError):
    """パラメータが不正な場合の例外"""

    def __init__(self, reason: str, param_name: str | None = None):
        super().__init__(
            reason=reason,
            error_code=105,
            status=400,
            details={"param": param_name} if param_name else None
        )


class PhotoValidationRejectedError(ApplicationError):
    """写真が期待するビュー・品質を満たさない場合の例外（再アップロードで回復可能）"""

    def __init__(
        self,
        rejection_reason: str,
        expected_view: str,
        detected_view: str,
        error_type: str | None,
        quality_score: float,
        issues: list[str],
        warnings: list[str],
    ):
        super().__init__(
            reason=rejection_reason,
            error_code=201,
            status=422,
            details={
                "error_type": error_type,
                "expected_view": expected_view,
                "detected_view": detected_view,
                "quality_score": quality_score,
                "issues": issues,
                "warnings": warnings,
            }
        )


class UpstreamComputationError(ApplicationError):
    """外部の計測プロバイダが失敗・タイムアウトした場合の例外（再試行可能）"""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(
            reason="写真の計測に失敗しました。時間をおいて再度お試しください",
            error_code=202,
            status=502,
            details={"message": message, "timed_out": timed_out, "retryable": True}
        )

