from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from .models import (
    AIDetectionResult,
    AnalyzerKind,
    AuthenticityMetadata,
    AuthenticityResult,
    AuthenticitySource,
    ManipulationResult,
    OverallAssessment,
    VideoAnalysisResult,
    empty_indicators,
)

RECOMMENDATIONS = (
    (80, "HIGH CREDIBILITY", "Video appears authentic with minimal signs of manipulation or AI generation."),
    (60, "MODERATE CREDIBILITY", "Video shows some concerning indicators. Additional verification recommended."),
    (40, "LOW CREDIBILITY", "Video shows significant signs of manipulation or AI generation. Use with caution."),
    (
        0,
        "VERY LOW CREDIBILITY",
        "Video likely contains AI-generated content or significant manipulations. Not recommended for use.",
    ),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class CredibilityWeights:
    ai: float = 0.40
    manipulation: float = 0.35
    authenticity: float = 0.25

    def __post_init__(self) -> None:
        total = self.ai + self.manipulation + self.authenticity
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"CredibilityWeights must sum to 1.0, got {total}")

    def as_dict(self) -> dict[str, float]:
        return {"ai": self.ai, "manipulation": self.manipulation, "authenticity": self.authenticity}


@dataclass
class CredibilityAggregator:
    weights: CredibilityWeights = field(default_factory=CredibilityWeights)

    def calculate_credibility_score(self, ai_confidence: float, manipulation_confidence: float, authenticity_confidence: float) -> int:
        # AI generation and manipulation count against credibility, authenticity for it.
        weighted = (
            (100 - ai_confidence) * self.weights.ai
            + (100 - manipulation_confidence) * self.weights.manipulation
            + authenticity_confidence * self.weights.authenticity
        )
        return round_half_up(round(max(0.0, min(100.0, weighted)), 6))

    @staticmethod
    def recommendation_tier(score: int) -> str:
        for threshold, tier, _ in RECOMMENDATIONS:
            if score >= threshold:
                return tier
        return RECOMMENDATIONS[-1][1]

    @staticmethod
    def generate_recommendation(score: int) -> str:
        for threshold, tier, sentence in RECOMMENDATIONS:
            if score >= threshold:
                return f"{tier}: {sentence}"
        _, tier, sentence = RECOMMENDATIONS[-1]
        return f"{tier}: {sentence}"

    @staticmethod
    def generate_summary(ai_confidence: float, manipulation_confidence: float, authenticity_confidence: float, score: int) -> str:
        parts: list[str] = []
        if ai_confidence > 70:
            parts.append(f"High likelihood of AI generation ({ai_confidence:g}% confidence)")
        elif ai_confidence > 40:
            parts.append("Moderate signs of AI generation detected")
        else:
            parts.append("Low likelihood of AI generation")

        if manipulation_confidence > 70:
            parts.append("significant video manipulation detected")
        elif manipulation_confidence > 40:
            parts.append("some video editing indicators found")
        else:
            parts.append("minimal signs of manipulation")

        if authenticity_confidence > 70:
            parts.append("strong authenticity indicators present")
        elif authenticity_confidence > 40:
            parts.append("moderate authenticity verification")
        else:
            parts.append("limited authenticity verification possible")

        return f"Analysis complete with {score}% credibility score. {', '.join(parts)}."

    def aggregate(
        self,
        ai_result: AIDetectionResult,
        manipulation_result: ManipulationResult,
        authenticity_result: AuthenticityResult,
    ) -> VideoAnalysisResult:
        ai, manip, auth = ai_result.confidence, manipulation_result.confidence, authenticity_result.confidence
        score = self.calculate_credibility_score(ai, manip, auth)
        return VideoAnalysisResult(
            ai_generated=ai_result,
            manipulation=manipulation_result,
            authenticity=authenticity_result,
            overall=OverallAssessment(
                credibility_score=score,
                recommendation=self.generate_recommendation(score),
                summary=self.generate_summary(ai, manip, auth, score),
            ),
        )

    @staticmethod
    def validate(result: VideoAnalysisResult) -> list[str]:
        """Collect range and completeness problems; never raises."""
        errors: list[str] = []
        sections = (
            ("AI detection", result.ai_generated),
            ("Manipulation detection", result.manipulation),
            ("Authenticity verification", result.authenticity),
        )
        for label, section in sections:
            if not 0 <= section.confidence <= 100:
                errors.append(f"{label} confidence score is out of valid range (0-100)")
            for key, value in (section.indicators or {}).items():
                if not 0 <= value <= 100:
                    errors.append(f"{label} indicator {key} is out of valid range (0-100)")
            if not section.explanation:
                errors.append(f"{label} explanation is missing")

        if not 0 <= result.overall.credibility_score <= 100:
            errors.append("Overall credibility score is out of valid range (0-100)")

        for anomaly in result.manipulation.anomalies:
            if anomaly.timestamp < 0:
                errors.append(f"Timeline anomaly has invalid timestamp: {anomaly.timestamp}")
            if anomaly.duration <= 0:
                errors.append(f"Timeline anomaly has invalid duration: {anomaly.duration}")
            if not 0 <= anomaly.confidence <= 100:
                errors.append(f"Timeline anomaly has invalid confidence score: {anomaly.confidence}")

        for source in result.authenticity.sources:
            if not 0 <= source.similarity <= 100:
                errors.append(f"Authenticity source has invalid similarity score: {source.similarity}")
            if not source.source:
                errors.append("Authenticity source is missing a name")

        if not result.overall.recommendation:
            errors.append("Overall recommendation is missing")
        if not result.overall.summary:
            errors.append("Overall summary is missing")
        return errors


def failed_result(reason: str) -> VideoAnalysisResult:
    """Fully defaulted aggregate used when no analyzer produced anything."""
    return VideoAnalysisResult(
        ai_generated=AIDetectionResult(
            explanation=reason, indicators=empty_indicators(AnalyzerKind.AI_DETECTION)
        ),
        manipulation=ManipulationResult(
            explanation=reason, indicators=empty_indicators(AnalyzerKind.MANIPULATION)
        ),
        authenticity=AuthenticityResult(
            explanation=reason,
            indicators=empty_indicators(AnalyzerKind.AUTHENTICITY),
            metadata=AuthenticityMetadata(),
        ),
        overall=OverallAssessment(
            credibility_score=0,
            recommendation="Analysis could not be completed",
            summary=reason,
        ),
    )


def validate_authenticity_sources(sources: Iterable[AuthenticitySource]) -> bool:
    return all(
        0 <= source.similarity <= 100 and bool(source.source) and isinstance(source.verified, bool)
        for source in sources
    )


def build_authenticity_report(result: AuthenticityResult) -> dict[str, Any]:
    summary = (
        f"Authenticity confidence: {result.confidence:g}% based on "
        f"{len(result.sources)} source(s) analyzed."
    )

    details: list[str] = []
    metadata = result.metadata
    if metadata.creation_date:
        details.append(f"Creation date: {metadata.creation_date}")
    if metadata.device_info:
        details.append(f"Device information: {metadata.device_info}")
    if metadata.location:
        details.append(f"Location data: {metadata.location}")
    if metadata.compression_history:
        details.append(f"Compression history: {', '.join(metadata.compression_history)}")

    recommendations: list[str] = []
    if result.confidence >= 80:
        recommendations.append("High authenticity confidence - video appears to be from original source")
    elif result.confidence >= 60:
        recommendations.append("Moderate authenticity - additional verification recommended")
    else:
        recommendations.append("Low authenticity confidence - exercise caution when using this content")

    verified = sum(1 for source in result.sources if source.verified)
    if verified:
        recommendations.append(f"{verified} verified source(s) found")
    else:
        recommendations.append("No verified sources identified - consider additional verification")

    return {"summary": summary, "details": details, "recommendations": recommendations}
