"""
Heuristic extraction of structured signals from analyzer free text.
Everything here is best-effort text mining: a response that does not match
any pattern yields zero confidence and empty payloads, never an exception.
"""

from __future__ import annotations

import logging
import math
import random
import re
from dataclasses import dataclass
from typing import Sequence

from .models import (
    AIDetectionResult,
    AnalyzerKind,
    AuthenticityMetadata,
    AuthenticityResult,
    AuthenticitySource,
    ManipulationResult,
    TimelineAnomaly,
    empty_indicators,
)

logger = logging.getLogger(__name__)

CONFIDENCE_PATTERNS = (
    re.compile(r"confidence[:\s]*(\d+)%?", re.I),
    re.compile(r"(\d+)%?\s*confidence", re.I),
)
AI_SCORE_PATTERNS = (re.compile(r"score[:\s]*(\d+)", re.I),)
AUTHENTICITY_PATTERNS = (
    re.compile(r"(\d+)%?\s*(?:authentic|genuine|original)", re.I),
    re.compile(r"authenticity[:\s]*(\d+)%?", re.I),
)

TIMESTAMP_PATTERN = re.compile(r"(\d+):(\d{2})\b|(\d+(?:\.\d+)?)\s*(?:seconds?|secs?|s)\b", re.I)
CONTEXT_WINDOW = 100
TIMESTAMP_ANOMALY_DURATION = 1.0
FALLBACK_ANOMALY_DURATION = 2.0

TECHNIQUE_KEYWORDS = (
    "deepfake",
    "face swap",
    "voice synthesis",
    "style transfer",
    "GANs",
    "neural network",
    "AI generation",
    "synthetic media",
    "face replacement",
    "digital manipulation",
    "artificial generation",
)

AI_INDICATOR_KEYWORDS = {
    "facial_inconsistencies": ("facial", "face"),
    "temporal_artifacts": ("temporal", "flicker"),
    "lighting_anomalies": ("lighting", "shadow"),
    "compression_artifacts": ("compression", "artifact"),
}

AUTHENTICITY_INDICATOR_KEYWORDS = {
    "metadata_integrity": ("metadata", "exif", "timestamp"),
    "source_provenance": ("provenance", "watermark", "original source"),
    "contextual_consistency": ("consistent", "plausib", "natural"),
    "compression_consistency": ("compression", "encoding", "encoded"),
}

COMPRESSION_KEYWORDS = ("h264", "h265", "mp4", "avi", "mov", "webm", "compressed", "encoded", "transcoded")

SOURCE_PATTERNS = (
    (re.compile(r"\b(?:youtube|yt)\b", re.I), "YouTube", False),
    (re.compile(r"\b(?:facebook|fb)\b", re.I), "Facebook", False),
    (re.compile(r"\b(?:instagram|ig)\b", re.I), "Instagram", False),
    (re.compile(r"\btwitter\b|\bx\.com\b", re.I), "Twitter/X", False),
    (re.compile(r"\btiktok\b", re.I), "TikTok", False),
    (re.compile(r"\bnews\b|\bbroadcast", re.I), "News Media", True),
    (re.compile(r"\boriginal\b|\bsource\b", re.I), "Original Source", True),
)

DATE_PATTERN = re.compile(r"(?:created?|date)[:\s]*([0-9]{4}[-/][0-9]{1,2}[-/][0-9]{1,2})", re.I)
DEVICE_PATTERN = re.compile(r"(?:device|camera|phone)(?:\s+info(?:rmation)?)?\s*:\s*([^\n\r.]+)", re.I)
LOCATION_PATTERN = re.compile(r"(?:location|gps|coordinates)\s*:\s*([^\n\r.]+)", re.I)


@dataclass(frozen=True)
class ContextClass:
    type: str
    description: str
    indicator: str | None
    keywords: tuple[str, ...] = ()


# Checked in order; the first family with a keyword in the window wins.
CONTEXT_CLASSES = (
    ContextClass("cut", "Frame cut or transition detected", "frame_cuts", ("cut", "transition")),
    ContextClass("insertion", "Object manipulation detected", "object_insertion", ("object", "insertion", "removal")),
    ContextClass("insertion", "Background change detected", "background_changes", ("background", "composit")),
    ContextClass(
        "temporal_inconsistency", "Audio-video sync issue detected", "audio_sync_issues", ("audio", "sync")
    ),
)
DEFAULT_CONTEXT = ContextClass("temporal_inconsistency", "Temporal anomaly detected", None)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def extract_confidence(text: str, extra_patterns: Sequence[re.Pattern] = ()) -> float:
    for pattern in (*CONFIDENCE_PATTERNS, *extra_patterns):
        match = pattern.search(text)
        if match:
            return clamp(float(int(match.group(1))))
    return 0.0


def extract_timestamps(text: str, duration_hint: float) -> list[tuple[float, int]]:
    """Return (seconds, text position) pairs not beyond the duration hint."""
    found: list[tuple[float, int]] = []
    for match in TIMESTAMP_PATTERN.finditer(text):
        if match.group(1) is not None:
            seconds = int(match.group(1)) * 60 + int(match.group(2))
        else:
            seconds = float(match.group(3))
        if seconds <= duration_hint:
            found.append((float(seconds), match.start()))
    return found


def classify_context(text: str, position: int) -> ContextClass:
    window = text[max(0, position - CONTEXT_WINDOW) : position + CONTEXT_WINDOW].lower()
    for context in CONTEXT_CLASSES:
        if any(keyword in window for keyword in context.keywords):
            return context
    return DEFAULT_CONTEXT


def synthesize_anomalies(confidence: float, duration_hint: float) -> list[TimelineAnomaly]:
    """Evenly spaced placeholders so a confident verdict never has an empty timeline."""
    if confidence <= 50 or duration_hint <= 0:
        return []
    count = math.floor(confidence / 25)
    return [
        TimelineAnomaly(
            timestamp=duration_hint / (count + 1) * (index + 1),
            duration=FALLBACK_ANOMALY_DURATION,
            type="temporal_inconsistency",
            confidence=confidence,
            description="General manipulation indicator detected",
        )
        for index in range(count)
    ]


def _has_keyword(lowered: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword.lower())}\b", lowered) is not None


class ResponseParser:
    """Turns one inference response into a per-variant analyzer result."""

    def __init__(self, *, jitter: float = 0.0, seed: int | None = None) -> None:
        self._jitter = max(0.0, jitter)
        self._rng = random.Random(seed)

    def _score(self, confidence: float) -> float:
        if not self._jitter:
            return clamp(confidence)
        return round(clamp(confidence + self._rng.uniform(-self._jitter, self._jitter)), 2)

    def _keyword_indicators(self, kind: AnalyzerKind, text: str, confidence: float, families: dict) -> dict[str, float]:
        lowered = text.lower()
        indicators = empty_indicators(kind)
        for key, keywords in families.items():
            if any(keyword in lowered for keyword in keywords):
                indicators[key] = self._score(confidence)
        return indicators

    def parse_ai_detection(self, text: str) -> AIDetectionResult:
        try:
            confidence = extract_confidence(text, AI_SCORE_PATTERNS)
            lowered = text.lower()
            techniques = [keyword for keyword in TECHNIQUE_KEYWORDS if _has_keyword(lowered, keyword)]
            indicators = self._keyword_indicators(
                AnalyzerKind.AI_DETECTION, text, confidence, AI_INDICATOR_KEYWORDS
            )
            return AIDetectionResult(
                confidence=confidence,
                explanation=_explanation(text),
                indicators=indicators,
                techniques=techniques,
            )
        except Exception as exc:  # pragma: no cover - runtime safety
            logger.warning("Failed to parse AI detection response: %s", exc)
            return AIDetectionResult(
                explanation=_explanation(text), indicators=empty_indicators(AnalyzerKind.AI_DETECTION)
            )

    def parse_manipulation(self, text: str, duration_hint: float) -> ManipulationResult:
        try:
            confidence = extract_confidence(text)
            indicators = empty_indicators(AnalyzerKind.MANIPULATION)
            anomalies: list[TimelineAnomaly] = []
            for timestamp, position in extract_timestamps(text, duration_hint):
                context = classify_context(text, position)
                score = self._score(confidence)
                if context.indicator:
                    indicators[context.indicator] = max(indicators[context.indicator], score)
                anomalies.append(
                    TimelineAnomaly(
                        timestamp=timestamp,
                        duration=TIMESTAMP_ANOMALY_DURATION,
                        type=context.type,
                        confidence=score,
                        description=context.description,
                    )
                )
            if not anomalies:
                anomalies = synthesize_anomalies(confidence, duration_hint)
            return ManipulationResult(
                confidence=confidence,
                explanation=_explanation(text),
                indicators=indicators,
                anomalies=anomalies,
            )
        except Exception as exc:  # pragma: no cover - runtime safety
            logger.warning("Failed to parse manipulation response: %s", exc)
            return ManipulationResult(
                explanation=_explanation(text), indicators=empty_indicators(AnalyzerKind.MANIPULATION)
            )

    def parse_authenticity(self, text: str) -> AuthenticityResult:
        try:
            confidence = extract_confidence(text, AUTHENTICITY_PATTERNS)
            indicators = self._keyword_indicators(
                AnalyzerKind.AUTHENTICITY, text, confidence, AUTHENTICITY_INDICATOR_KEYWORDS
            )
            return AuthenticityResult(
                confidence=confidence,
                explanation=_explanation(text),
                indicators=indicators,
                sources=self._extract_sources(text, confidence),
                metadata=extract_metadata(text),
            )
        except Exception as exc:  # pragma: no cover - runtime safety
            logger.warning("Failed to parse authenticity response: %s", exc)
            return AuthenticityResult(
                explanation=_explanation(text), indicators=empty_indicators(AnalyzerKind.AUTHENTICITY)
            )

    def _extract_sources(self, text: str, confidence: float) -> list[AuthenticitySource]:
        sources = [
            AuthenticitySource(similarity=self._score(confidence), source=name, verified=verified)
            for pattern, name, verified in SOURCE_PATTERNS
            if pattern.search(text)
        ]
        if not sources and confidence > 30:
            sources.append(AuthenticitySource(similarity=confidence, source="Unknown Source", verified=False))
        return sources


def extract_metadata(text: str) -> AuthenticityMetadata:
    date_match = DATE_PATTERN.search(text)
    device_match = DEVICE_PATTERN.search(text)
    location_match = LOCATION_PATTERN.search(text)
    lowered = text.lower()
    return AuthenticityMetadata(
        creation_date=date_match.group(1) if date_match else None,
        device_info=device_match.group(1).strip() if device_match else None,
        location=location_match.group(1).strip() if location_match else None,
        compression_history=[
            keyword.upper() for keyword in COMPRESSION_KEYWORDS if _has_keyword(lowered, keyword)
        ],
    )


def _explanation(text: str) -> str:
    return text.strip() or "No explanation returned by the analyzer."
