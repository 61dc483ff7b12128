from __future__ import annotations

import asyncio
import logging
from typing import ClassVar, Sequence

import numpy as np

from .config import Settings, get_settings
from .errors import AnalyzerFailure, VariantFailure
from .inference import InferenceProvider
from .models import (
    AIDetectionResult,
    AnalyzerKind,
    AnalyzerResult,
    AuthenticityMetadata,
    AuthenticityResult,
    AuthenticitySource,
    ManipulationResult,
    empty_indicators,
)
from .response_parser import ResponseParser
from .timeline import merge_anomalies

logger = logging.getLogger(__name__)


AI_DETECTION_PROMPTS = {
    "deepfake": """Analyze this video for signs of deepfake or AI-generated content. Look specifically for:
1. Facial inconsistencies (unnatural eye movements, lip sync issues, facial geometry problems)
2. Temporal artifacts (flickering, sudden quality changes, frame inconsistencies)
3. Lighting anomalies (inconsistent shadows, unnatural lighting on faces)
4. Compression artifacts typical of AI generation
5. Unnatural movements or gestures
6. Background-foreground inconsistencies

Provide a confidence score (0-100) where 100 means definitely AI-generated, and list specific techniques detected.""",
    "synthetic": """Examine this video for synthetic media indicators. Focus on:
1. Digital artifacts from AI generation processes
2. Unnatural textures or surfaces
3. Inconsistent physics or motion
4. Repetitive patterns typical of AI models
5. Quality inconsistencies between different parts of the frame
6. Temporal coherence issues

Rate the likelihood of synthetic generation and explain your findings.""",
    "manipulation": """Detect AI-assisted video manipulation in this content. Look for:
1. Face swapping or replacement indicators
2. Voice synthesis markers
3. Object insertion or removal using AI tools
4. Style transfer or filter applications
5. Resolution or quality enhancement artifacts
6. Background replacement or modification

Assess the confidence level and identify specific AI manipulation techniques used.""",
}

MANIPULATION_PROMPTS = {
    "temporal": """Analyze this video for temporal manipulation and editing. Look for:
1. Sudden cuts or transitions between frames
2. Temporal inconsistencies in motion or lighting
3. Frame rate changes or dropped frames
4. Inconsistent compression between segments
5. Audio-video synchronization issues
6. Timeline gaps or jumps

Identify specific timestamps where anomalies occur and rate confidence for each detection.""",
    "spatial": """Examine this video for spatial manipulation and object editing. Focus on:
1. Object insertion, removal, or replacement
2. Background changes or compositing
3. Scale or perspective inconsistencies
4. Edge artifacts around modified objects
5. Color or lighting mismatches
6. Unnatural object interactions

Mark regions and timestamps of detected manipulations with confidence scores.""",
    "quality": """Detect quality-based manipulation indicators in this video:
1. Inconsistent resolution or sharpness across the frame
2. Compression artifacts in specific regions
3. Noise patterns that don't match the source
4. Upscaling or enhancement artifacts
5. Format conversion indicators
6. Re-encoding signatures

Provide timestamps and confidence levels for quality anomalies detected.""",
}

AUTHENTICITY_PROMPTS = {
    "metadata": """Analyze this video's metadata and technical characteristics for authenticity markers:
1. Compression patterns and encoding signatures
2. Creation timestamp consistency
3. Device fingerprints and camera characteristics
4. File format and container analysis
5. Embedded metadata integrity
6. Technical fingerprints that indicate original source

Assess the likelihood that this video is from an original, unmodified source.""",
    "contextual": """Examine this video for contextual authenticity indicators:
1. Environmental consistency (lighting, shadows, reflections)
2. Physical plausibility of events and interactions
3. Temporal consistency of elements in the scene
4. Audio-visual coherence and natural synchronization
5. Realistic human behavior and expressions
6. Consistent perspective and camera movement

Evaluate whether the content appears to be authentic and unmanipulated.""",
    "source": """Analyze this video for source verification markers:
1. Watermarks, logos, or identifying elements
2. Broadcasting or platform-specific characteristics
3. Professional vs amateur production indicators
4. Equipment signatures (camera, microphone, editing software)
5. Distribution chain indicators
6. Compression history and re-encoding patterns

Determine the likelihood of authentic source material and original provenance.""",
}


class AnalyzerAdapter:
    """
    Runs every prompt variant of one analyzer against the inference provider
    and folds the parsed variant results into a single result.
    Variant failures are tolerated as long as one variant succeeds.
    """

    kind: ClassVar[AnalyzerKind]
    name: ClassVar[str]
    prompts: ClassVar[dict[str, str]]

    def __init__(self, provider: InferenceProvider, *, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._provider = provider

    def new_parser(self) -> ResponseParser:
        # Fresh RNG per call so seeded jitter does not depend on earlier requests.
        return ResponseParser(jitter=self._settings.indicator_jitter, seed=self._settings.jitter_seed)

    @property
    def variants(self) -> list[str]:
        return list(self.prompts)

    async def analyze(
        self,
        media: bytes,
        *,
        duration_hint: float | None = None,
        mime_type: str | None = None,
    ) -> AnalyzerResult:
        duration = self._settings.default_video_duration if duration_hint is None else duration_hint
        mime = mime_type or self._settings.default_mime_type
        tasks = [self._run_variant(variant, prompt, media, mime) for variant, prompt in self.prompts.items()]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        # Parsed in prompt-table order so jitter draws do not follow completion order.
        parser = self.new_parser()
        succeeded: list[tuple[int, str, AnalyzerResult]] = []
        reasons: list[str] = []
        for index, (variant, outcome) in enumerate(zip(self.prompts, outcomes), start=1):
            if isinstance(outcome, str):
                succeeded.append((index, variant, self._parse(parser, outcome, duration)))
            elif isinstance(outcome, BaseException):
                logger.warning("%s variant %s failed: %s", self.name, variant, outcome)
                reasons.append(str(outcome))

        if not succeeded:
            raise AnalyzerFailure(self.name, reasons)
        return self._fold(succeeded)

    async def _run_variant(
        self,
        variant: str,
        prompt: str,
        media: bytes,
        mime_type: str,
    ) -> str:
        try:
            text = await self._provider.invoke(prompt, media, mime_type)
        except Exception as exc:
            raise VariantFailure(variant, str(exc) or exc.__class__.__name__) from exc
        if not isinstance(text, str) or not text.strip():
            raise VariantFailure(variant, "empty response")
        return text

    def _fold(self, succeeded: Sequence[tuple[int, str, AnalyzerResult]]) -> AnalyzerResult:
        results = [result for _, _, result in succeeded]
        confidence = round(float(np.mean([result.confidence for result in results])), 2)
        indicators = {
            key: round(float(np.mean([result.indicators.get(key, 0.0) for result in results])), 2)
            for key in empty_indicators(self.kind)
        }
        blocks = [f"Analysis {index} ({variant}): {result.explanation}" for index, variant, result in succeeded]
        explanation = f"Combined {self.name} Analysis:\n\n" + "\n\n".join(blocks)
        return self._fold_payload(results, confidence=confidence, indicators=indicators, explanation=explanation)

    def default_result(self, reason: str) -> AnalyzerResult:
        raise NotImplementedError

    def _parse(self, parser: ResponseParser, text: str, duration: float) -> AnalyzerResult:
        raise NotImplementedError

    def _fold_payload(self, results: list, **common) -> AnalyzerResult:
        raise NotImplementedError


class AIDetectionAnalyzer(AnalyzerAdapter):
    kind = AnalyzerKind.AI_DETECTION
    name = "AI Detection"
    prompts = AI_DETECTION_PROMPTS

    def _parse(self, parser: ResponseParser, text: str, duration: float) -> AIDetectionResult:
        return parser.parse_ai_detection(text)

    def _fold_payload(self, results: list[AIDetectionResult], **common) -> AIDetectionResult:
        techniques: list[str] = []
        for result in results:
            techniques.extend(t for t in result.techniques if t not in techniques)
        return AIDetectionResult(techniques=techniques, **common)

    def default_result(self, reason: str) -> AIDetectionResult:
        return AIDetectionResult(explanation=reason, indicators=empty_indicators(self.kind))


class ManipulationAnalyzer(AnalyzerAdapter):
    kind = AnalyzerKind.MANIPULATION
    name = "Manipulation Detection"
    prompts = MANIPULATION_PROMPTS

    def _parse(self, parser: ResponseParser, text: str, duration: float) -> ManipulationResult:
        return parser.parse_manipulation(text, duration)

    def _fold_payload(self, results: list[ManipulationResult], **common) -> ManipulationResult:
        anomalies = [anomaly for result in results for anomaly in result.anomalies]
        merged = merge_anomalies(anomalies, tolerance=self._settings.anomaly_merge_tolerance)
        return ManipulationResult(anomalies=merged, **common)

    def default_result(self, reason: str) -> ManipulationResult:
        return ManipulationResult(explanation=reason, indicators=empty_indicators(self.kind))


class AuthenticityAnalyzer(AnalyzerAdapter):
    kind = AnalyzerKind.AUTHENTICITY
    name = "Authenticity Verification"
    prompts = AUTHENTICITY_PROMPTS

    def _parse(self, parser: ResponseParser, text: str, duration: float) -> AuthenticityResult:
        return parser.parse_authenticity(text)

    def _fold_payload(self, results: list[AuthenticityResult], **common) -> AuthenticityResult:
        sources = deduplicate_sources(source for result in results for source in result.sources)
        return AuthenticityResult(sources=sources, metadata=merge_metadata(results), **common)

    def default_result(self, reason: str) -> AuthenticityResult:
        return AuthenticityResult(explanation=reason, indicators=empty_indicators(self.kind))


def deduplicate_sources(sources) -> list[AuthenticitySource]:
    """Keep one entry per source name (case-insensitive), the most similar one."""
    by_name: dict[str, AuthenticitySource] = {}
    for source in sources:
        key = source.source.lower()
        existing = by_name.get(key)
        if existing is None or source.similarity > existing.similarity:
            by_name[key] = source
    return sorted(by_name.values(), key=lambda item: item.similarity, reverse=True)


def merge_metadata(results: Sequence[AuthenticityResult]) -> AuthenticityMetadata:
    def first(field_name: str) -> str | None:
        for result in results:
            value = getattr(result.metadata, field_name)
            if value:
                return value
        return None

    history: list[str] = []
    for result in results:
        history.extend(entry for entry in result.metadata.compression_history if entry not in history)
    return AuthenticityMetadata(
        creation_date=first("creation_date"),
        device_info=first("device_info"),
        location=first("location"),
        compression_history=history,
    )


ANALYZER_TYPES: dict[AnalyzerKind, type[AnalyzerAdapter]] = {
    AnalyzerKind.AI_DETECTION: AIDetectionAnalyzer,
    AnalyzerKind.MANIPULATION: ManipulationAnalyzer,
    AnalyzerKind.AUTHENTICITY: AuthenticityAnalyzer,
}


def build_analyzers(
    provider: InferenceProvider,
    *,
    settings: Settings | None = None,
) -> dict[AnalyzerKind, AnalyzerAdapter]:
    settings = settings or get_settings()
    return {
        kind: analyzer_type(provider, settings=settings)
        for kind, analyzer_type in ANALYZER_TYPES.items()
    }
