from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalyzerKind(str, Enum):
    AI_DETECTION = "ai-detection"
    MANIPULATION = "manipulation"
    AUTHENTICITY = "authenticity"


class AnalysisState(str, Enum):
    INITIALIZING = "initializing"
    RUNNING_ANALYZERS = "running-analyzers"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    FAILED = "failed"


AnomalyType = Literal["cut", "insertion", "deletion", "temporal_inconsistency", "quality_change"]

INDICATOR_KEYS: dict[AnalyzerKind, tuple[str, ...]] = {
    AnalyzerKind.AI_DETECTION: (
        "facial_inconsistencies",
        "temporal_artifacts",
        "lighting_anomalies",
        "compression_artifacts",
    ),
    AnalyzerKind.MANIPULATION: (
        "frame_cuts",
        "object_insertion",
        "background_changes",
        "audio_sync_issues",
    ),
    AnalyzerKind.AUTHENTICITY: (
        "metadata_integrity",
        "source_provenance",
        "contextual_consistency",
        "compression_consistency",
    ),
}


def empty_indicators(kind: AnalyzerKind) -> dict[str, float]:
    return {key: 0.0 for key in INDICATOR_KEYS[kind]}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TimelineAnomaly(_Frozen):
    timestamp: float = Field(..., ge=0.0)
    duration: float = Field(..., gt=0.0)
    type: AnomalyType = "temporal_inconsistency"
    confidence: float = Field(0.0, ge=0.0, le=100.0)
    description: str = ""

    @property
    def end(self) -> float:
        return self.timestamp + self.duration


class AuthenticitySource(_Frozen):
    url: str | None = None
    similarity: float = Field(0.0, ge=0.0, le=100.0)
    source: str = Field(..., min_length=1)
    verified: bool = False


class AuthenticityMetadata(_Frozen):
    creation_date: str | None = None
    device_info: str | None = None
    location: str | None = None
    compression_history: list[str] = Field(default_factory=list)


class AnalyzerResult(_Frozen):
    kind: AnalyzerKind
    confidence: float = Field(0.0, ge=0.0, le=100.0)
    explanation: str = Field(..., min_length=1)
    indicators: dict[str, float] = Field(default_factory=dict)

    @field_validator("indicators")
    @classmethod
    def _indicators_in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for key, score in value.items():
            if not 0.0 <= score <= 100.0:
                raise ValueError(f"Indicator {key} out of range: {score}")
        return value


class AIDetectionResult(AnalyzerResult):
    kind: Literal[AnalyzerKind.AI_DETECTION] = AnalyzerKind.AI_DETECTION
    techniques: list[str] = Field(default_factory=list)


class ManipulationResult(AnalyzerResult):
    kind: Literal[AnalyzerKind.MANIPULATION] = AnalyzerKind.MANIPULATION
    anomalies: list[TimelineAnomaly] = Field(default_factory=list)


class AuthenticityResult(AnalyzerResult):
    kind: Literal[AnalyzerKind.AUTHENTICITY] = AnalyzerKind.AUTHENTICITY
    sources: list[AuthenticitySource] = Field(default_factory=list)
    metadata: AuthenticityMetadata = Field(default_factory=AuthenticityMetadata)


class OverallAssessment(_Frozen):
    credibility_score: int = Field(..., ge=0, le=100, alias="credibilityScore")
    recommendation: str
    summary: str


class VideoAnalysisResult(_Frozen):
    ai_generated: AIDetectionResult = Field(..., alias="aiGenerated")
    manipulation: ManipulationResult
    authenticity: AuthenticityResult
    overall: OverallAssessment

    def to_payload(self) -> dict:
        """Shape used by the HTTP layer (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


class AnalysisProgress(_Frozen):
    stage: str
    progress: int = Field(..., ge=0, le=100)
    message: str


class AnalysisOptions(_Frozen):
    timeout_ms: int = Field(30000, gt=0)
    retry_attempts: int = Field(2, ge=0)
