"""
Analysis orchestration.

Runs the requested analyzers concurrently, each behind a timeout race and a
bounded retry loop, substitutes zero-confidence defaults for analyzers that
never succeed and aggregates everything into one VideoAnalysisResult.
Only the case where every requested analyzer fails is raised to the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from .aggregation import CredibilityAggregator, failed_result, round_half_up
from .analyzers import AnalyzerAdapter, build_analyzers
from .config import Settings, get_settings
from .errors import AllAnalyzersFailed, AnalyzerFailure
from .inference import InferenceProvider
from .models import (
    AIDetectionResult,
    AnalysisOptions,
    AnalysisProgress,
    AnalysisState,
    AnalyzerKind,
    AnalyzerResult,
    AuthenticityResult,
    ManipulationResult,
    VideoAnalysisResult,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[AnalysisProgress], Union[None, Awaitable[None]]]

ALL_KINDS = (AnalyzerKind.AI_DETECTION, AnalyzerKind.MANIPULATION, AnalyzerKind.AUTHENTICITY)

COMPLETION_MESSAGES = {
    AnalyzerKind.AI_DETECTION: "AI detection analysis completed",
    AnalyzerKind.MANIPULATION: "Manipulation detection completed",
    AnalyzerKind.AUTHENTICITY: "Authenticity verification completed",
}


@dataclass(frozen=True)
class AnalyzerOutcome:
    """Per-analyzer result: either a real result or a defaulted one with the failure reason."""

    kind: AnalyzerKind
    result: AnalyzerResult
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AnalysisRun:
    """State of one run_analysis call. Pass one in to observe the run from outside."""

    state: AnalysisState = AnalysisState.INITIALIZING
    history: List[AnalysisState] = field(default_factory=list)

    def transition(self, state: AnalysisState) -> None:
        logger.debug("Analysis state %s -> %s", self.state.value, state.value)
        self.history.append(state)
        self.state = state


class _ProgressReporter:
    """
    Single writer for the progress counter. Updates are delivered in order on
    background tasks: sync callbacks run in a worker thread, coroutine
    callbacks on the loop. The pipeline never waits for the sink.
    """

    def __init__(self, total_stages: int, callback: Optional[ProgressCallback]) -> None:
        self._total = max(1, total_stages)
        self._completed = 0
        self._callback = callback
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._last: Optional[asyncio.Task] = None

    async def stage_completed(self, stage: str, message: str) -> None:
        async with self._lock:
            self._completed += 1
            self.emit(stage, message)

    def emit(self, stage: str, message: str) -> None:
        progress = round_half_up(min(self._completed, self._total) / self._total * 100)
        update = AnalysisProgress(stage=stage, progress=progress, message=message)
        logger.debug("Progress %s: %s%% %s", stage, progress, message)
        if self._callback is None:
            return
        task = asyncio.ensure_future(self._deliver(self._last, update))
        self._last = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, previous: Optional[asyncio.Task], update: AnalysisProgress) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        try:
            if inspect.iscoroutinefunction(self._callback):
                await self._callback(update)
                return
            outcome = await asyncio.to_thread(self._callback, update)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.warning("Progress callback failed at %s: %s", update.stage, exc)


class AnalysisOrchestrator:
    def __init__(
        self,
        provider: InferenceProvider,
        *,
        settings: Settings | None = None,
        analyzers: Dict[AnalyzerKind, AnalyzerAdapter] | None = None,
        aggregator: CredibilityAggregator | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._provider = provider
        self._analyzers = analyzers or build_analyzers(provider, settings=self._settings)
        self._aggregator = aggregator or CredibilityAggregator()
        self._backoff = (
            self._settings.retry_backoff_seconds if backoff_seconds is None else backoff_seconds
        )

    def default_options(self) -> AnalysisOptions:
        return AnalysisOptions(
            timeout_ms=self._settings.analysis_timeout_ms,
            retry_attempts=self._settings.retry_attempts,
        )

    async def run_analysis(
        self,
        media: bytes,
        duration_hint: float | None = None,
        requested_kinds: Iterable[AnalyzerKind] | None = None,
        options: AnalysisOptions | None = None,
        on_progress: ProgressCallback | None = None,
        *,
        mime_type: str | None = None,
        run: AnalysisRun | None = None,
    ) -> VideoAnalysisResult:
        kinds = self._normalize_kinds(requested_kinds)
        options = options or self.default_options()
        duration = self._settings.default_video_duration if duration_hint is None else duration_hint
        reporter = _ProgressReporter(len(kinds) + 1, on_progress)
        run = run if run is not None else AnalysisRun()

        run.transition(AnalysisState.INITIALIZING)
        reporter.emit("initialization", "Starting video analysis...")

        run.transition(AnalysisState.RUNNING_ANALYZERS)
        reporter.emit("analysis", "Running parallel analysis...")
        tasks = [
            self._run_kind(kind, media, duration, mime_type, options, reporter)
            for kind in kinds
        ]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: Dict[AnalyzerKind, AnalyzerOutcome] = {}
        for kind, outcome in zip(kinds, gathered):
            if isinstance(outcome, AnalyzerOutcome):
                outcomes[kind] = outcome
            else:
                # _run_kind absorbs analyzer errors; anything here is unexpected.
                reason = str(outcome) or outcome.__class__.__name__
                outcomes[kind] = self._defaulted(kind, reason)

        failures = {kind: outcome.error for kind, outcome in outcomes.items() if not outcome.ok}
        if len(failures) == len(kinds):
            run.transition(AnalysisState.FAILED)
            reporter.emit("failed", "Video analysis failed")
            error = AllAnalyzersFailed(failures)
            error.fallback_result = failed_result(f"Analysis failed: {error}")
            logger.error("Analysis orchestration failed: %s", error)
            raise error

        for kind in ALL_KINDS:
            if kind not in outcomes:
                outcomes[kind] = AnalyzerOutcome(
                    kind=kind,
                    result=self._analyzers[kind].default_result(f"{self._analyzers[kind].name} analysis not requested"),
                    error="not requested",
                )

        run.transition(AnalysisState.AGGREGATING)
        reporter.emit("aggregation", "Aggregating analysis results...")
        result = self._aggregator.aggregate(
            _as(AIDetectionResult, outcomes[AnalyzerKind.AI_DETECTION].result),
            _as(ManipulationResult, outcomes[AnalyzerKind.MANIPULATION].result),
            _as(AuthenticityResult, outcomes[AnalyzerKind.AUTHENTICITY].result),
        )
        warnings = self._aggregator.validate(result)
        if warnings:
            logger.warning("Analysis results validation failed: %s", warnings)

        run.transition(AnalysisState.COMPLETED)
        await reporter.stage_completed("completed", "Video analysis completed successfully")
        return result

    async def _run_kind(
        self,
        kind: AnalyzerKind,
        media: bytes,
        duration: float,
        mime_type: str | None,
        options: AnalysisOptions,
        reporter: _ProgressReporter,
    ) -> AnalyzerOutcome:
        analyzer = self._analyzers[kind]
        try:
            result = await self.execute_with_retry(
                lambda: analyzer.analyze(media, duration_hint=duration, mime_type=mime_type),
                retry_attempts=options.retry_attempts,
                timeout_ms=options.timeout_ms,
                name=analyzer.name,
            )
            outcome = AnalyzerOutcome(kind=kind, result=result)
            message = COMPLETION_MESSAGES[kind]
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__
            outcome = self._defaulted(kind, reason)
            message = f"{analyzer.name} analysis failed"
        await reporter.stage_completed(kind.value, message)
        return outcome

    async def execute_with_retry(
        self,
        call: Callable[[], Awaitable[AnalyzerResult]],
        *,
        retry_attempts: int,
        timeout_ms: int,
        name: str,
    ) -> AnalyzerResult:
        last_error: Exception | None = None
        for attempt in range(retry_attempts + 1):
            try:
                return await asyncio.wait_for(call(), timeout=timeout_ms / 1000)
            except asyncio.TimeoutError:
                last_error = TimeoutError(f"{name} timed out after {timeout_ms}ms")
            except Exception as exc:
                last_error = exc
            if attempt < retry_attempts:
                delay = self._backoff * (2**attempt)
                logger.warning("%s attempt %d failed, retrying in %.1fs: %s", name, attempt + 1, delay, last_error)
                await asyncio.sleep(delay)
        raise last_error or AnalyzerFailure(name, [])

    def cancel(self, analysis_id: str) -> bool:
        """Mid-flight cancellation is not supported; cancel at the transport layer."""
        logger.warning("Analysis cancellation requested for %s but not implemented", analysis_id)
        return False

    def check_service_health(self) -> Dict[str, Any]:
        errors: List[str] = []
        configured = getattr(self._provider, "configured", True)
        if not configured:
            errors.append("Inference provider API key not configured")
        services = {"inference": bool(configured)}
        for kind in ALL_KINDS:
            services[kind.value] = bool(configured) and kind in self._analyzers
        return {"healthy": all(services.values()), "services": services, "errors": errors}

    def _defaulted(self, kind: AnalyzerKind, reason: str) -> AnalyzerOutcome:
        analyzer = self._analyzers[kind]
        explanation = f"{analyzer.name} analysis failed: {reason}"
        return AnalyzerOutcome(kind=kind, result=analyzer.default_result(explanation), error=reason)

    def _normalize_kinds(self, requested: Iterable[AnalyzerKind] | None) -> list[AnalyzerKind]:
        if requested is None:
            return list(ALL_KINDS)
        kinds = {AnalyzerKind(kind) for kind in requested}
        if not kinds:
            raise ValueError("At least one analysis type must be requested")
        missing = [kind.value for kind in kinds if kind not in self._analyzers]
        if missing:
            raise ValueError(f"No analyzer configured for: {', '.join(missing)}")
        return [kind for kind in ALL_KINDS if kind in kinds]


def estimate_analysis_time(size_bytes: int, kinds: Iterable[AnalyzerKind], video_duration: float) -> int:
    """Rough wall-clock estimate in seconds."""
    size_mb = size_bytes / (1024 * 1024)
    estimate = size_mb * 2 + len(list(kinds)) * 5 + (video_duration / 60) * 0.5
    return max(10, round_half_up(estimate))


def _as(model_type: type, result: AnalyzerResult):
    if not isinstance(result, model_type):
        raise TypeError(f"Expected {model_type.__name__}, got {type(result).__name__}")
    return result
