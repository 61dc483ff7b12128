from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from .models import AnalyzerKind, VideoAnalysisResult


class VideoTrustError(RuntimeError):
    """Base class for analysis errors."""


class InferenceError(VideoTrustError):
    """Raised when the inference provider returns no usable text."""


class VariantFailure(VideoTrustError):
    """One prompt variant of an analyzer failed."""

    def __init__(self, variant: str, reason: str) -> None:
        super().__init__(f"{variant}: {reason}")
        self.variant = variant
        self.reason = reason


class AnalyzerFailure(VideoTrustError):
    """Every variant of an analyzer failed, or all retries were exhausted."""

    def __init__(self, name: str, reasons: list[str]) -> None:
        joined = "; ".join(reasons) if reasons else "no variant succeeded"
        super().__init__(f"All {name} analyses failed: {joined}")
        self.name = name
        self.reasons = list(reasons)


class AllAnalyzersFailed(VideoTrustError):
    """Every requested analyzer failed after retries."""

    def __init__(
        self,
        reasons: dict[AnalyzerKind, str],
        fallback_result: VideoAnalysisResult | None = None,
    ) -> None:
        joined = "; ".join(f"{kind.value}: {reason}" for kind, reason in reasons.items())
        super().__init__(f"All analyses failed: {joined}")
        self.reasons = dict(reasons)
        self.fallback_result = fallback_result
