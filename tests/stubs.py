"""Scripted inference providers shared by the analyzer and orchestrator tests."""

import asyncio
import threading
import time
from typing import Any, Dict, Optional

from videotrust.analyzers import AI_DETECTION_PROMPTS, AUTHENTICITY_PROMPTS, MANIPULATION_PROMPTS
from videotrust.errors import InferenceError


class ScriptedProvider:
    """Answers each prompt from a fixed table; exceptions in the table are raised."""

    configured = True

    def __init__(self, responses: Dict[str, Any], default: Any = None) -> None:
        self._responses = responses
        self._default = default
        self.calls: list[str] = []

    async def invoke(self, prompt: str, media: bytes, mime_type: str) -> str:
        self.calls.append(prompt)
        await asyncio.sleep(0)
        outcome = self._responses.get(prompt, self._default)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            raise InferenceError("no scripted response")
        return outcome


def scripted(ai: Optional[Any] = None, manipulation: Optional[Any] = None, authenticity: Optional[Any] = None) -> ScriptedProvider:
    """
    Build a provider per analyzer: a dict maps variant -> response, any other
    value is used for every variant of that analyzer.
    """
    responses: Dict[str, Any] = {}
    for prompts, answer in (
        (AI_DETECTION_PROMPTS, ai),
        (MANIPULATION_PROMPTS, manipulation),
        (AUTHENTICITY_PROMPTS, authenticity),
    ):
        if answer is None:
            continue
        if isinstance(answer, dict):
            for variant, value in answer.items():
                responses[prompts[variant]] = value
        else:
            for prompt in prompts.values():
                responses[prompt] = answer
    return ScriptedProvider(responses)


class ProgressLog:
    """Progress sink that records updates and signals once the run has finished."""

    def __init__(self, delay: float = 0.0) -> None:
        self.updates: list = []
        self._delay = delay
        self._done = threading.Event()

    def __call__(self, update) -> None:
        if self._delay:
            time.sleep(self._delay)
        self.updates.append(update)
        if update.stage in ("completed", "failed"):
            self._done.set()

    @property
    def stages(self) -> list[str]:
        return [update.stage for update in self.updates]

    async def wait(self, timeout: float = 5.0) -> bool:
        return await asyncio.to_thread(self._done.wait, timeout)
