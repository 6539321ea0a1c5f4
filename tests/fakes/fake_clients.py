"""Fake Clients for unit testing.

In-memory fake implementations of the model gateway and vision client.
Implements the same protocols as real clients for duck typing.

Pattern: FakeClient for testing
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from cement_ops.clients.vision import get_fallback_vision_response
from cement_ops.core.constants import StageName
from cement_ops.core.exceptions import ModelTransportError


# Preamble text that identifies which stage issued a prompt
STAGE_MARKERS: dict[str, str] = {
    StageName.KILN.value: "Kiln Performance Expert",
    StageName.RAW_MILL.value: "Raw Mill Specialist",
    StageName.CEMENT_MILL.value: "Cement Mill Optimization Expert",
    StageName.ENERGY.value: "Energy Efficiency Auditor",
    StageName.TELEMETRY_SUPER.value: "Telemetry Super Agent",
    StageName.OPTIMIZATION.value: "Cement Plant Optimization Expert",
    StageName.SAFETY.value: "Safety & Quality Assurance Guardian",
    "repair": "could not be parsed as JSON",
}

FINDINGS_REPLY = json.dumps({"issues": ["temp drift"], "observations": ["stable"]})
OPTIMIZATION_REPLY = json.dumps(
    {
        "action": "Reduce kiln fuel by 2%",
        "expected_energy_delta_kwh_ton": -1.5,
        "confidence": 0.82,
        "quality_impact": "negligible",
    }
)
SAFETY_REPLY = json.dumps({"risk_level": "low", "decision": "approved", "reason": "Within limits"})

DEFAULT_STAGE_REPLIES: dict[str, str] = {
    StageName.KILN.value: FINDINGS_REPLY,
    StageName.RAW_MILL.value: FINDINGS_REPLY,
    StageName.CEMENT_MILL.value: FINDINGS_REPLY,
    StageName.ENERGY.value: FINDINGS_REPLY,
    StageName.TELEMETRY_SUPER.value: FINDINGS_REPLY,
    StageName.OPTIMIZATION.value: OPTIMIZATION_REPLY,
    StageName.SAFETY.value: SAFETY_REPLY,
}


def stage_of(prompt: str) -> str:
    """Identify the issuing stage from a prompt's preamble."""
    for stage, marker in STAGE_MARKERS.items():
        if marker in prompt:
            return stage
    return "other"


class FakeModelGateway:
    """Fake model gateway for unit testing.

    Implements ModelGatewayProtocol and ChatModelProtocol for duck typing.
    Replies are scripted per stage; a list of replies is consumed one per
    call and its last element repeats.

    Attributes:
        call_history: List of recorded calls for verification

    Example:
        >>> gateway = FakeModelGateway(replies={"safety": "not json"})
        >>> await gateway.generate(prompt)
        >>> assert gateway.call_history[0]["stage"] == "kiln"
    """

    def __init__(
        self,
        replies: dict[str, str | list[str]] | None = None,
        default_reply: str = "{}",
        error_on: dict[str, Exception] | None = None,
        transient_failures: dict[str, int] | None = None,
        delays: dict[str, float] | None = None,
        chat_reply: str = "The kiln is running within limits.",
    ) -> None:
        """Initialize fake gateway with scripted replies.

        Args:
            replies: Stage name to reply text (or sequence of replies)
            default_reply: Reply for prompts with no scripted stage
            error_on: Stage name to exception raised on every call
            transient_failures: Stage name to number of ModelTransportErrors
                raised before replies are returned
            delays: Stage name to seconds slept before replying
            chat_reply: Reply for chat()
        """
        self._replies: dict[str, list[str]] = {
            stage: [reply] for stage, reply in DEFAULT_STAGE_REPLIES.items()
        }
        for stage, reply in (replies or {}).items():
            self._replies[stage] = list(reply) if isinstance(reply, list) else [reply]
        self._default_reply = default_reply
        self._error_on = error_on or {}
        self._transient_failures = dict(transient_failures or {})
        self._delays = delays or {}
        self._chat_reply = chat_reply
        self.call_history: list[dict[str, Any]] = []
        self.completion_order: list[str] = []
        self.closed = False

    def calls_for(self, stage: str) -> list[dict[str, Any]]:
        return [call for call in self.call_history if call.get("stage") == stage]

    def clear_history(self) -> None:
        """Clear call history for test isolation."""
        self.call_history = []
        self.completion_order = []

    async def generate(self, prompt: str) -> str:
        stage = stage_of(prompt)
        self.call_history.append({"method": "generate", "stage": stage, "prompt": prompt})

        await asyncio.sleep(self._delays.get(stage, 0))

        if stage in self._error_on:
            raise self._error_on[stage]
        if self._transient_failures.get(stage, 0) > 0:
            self._transient_failures[stage] -= 1
            raise ModelTransportError("Model request timed out")

        self.completion_order.append(stage)
        queue = self._replies.get(stage)
        if not queue:
            return self._default_reply
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def chat(self, messages: list[Any]) -> str:
        self.call_history.append({"method": "chat", "messages": list(messages)})
        await asyncio.sleep(0)
        return self._chat_reply

    async def close(self) -> None:
        """Close client (no-op for fake)."""
        self.closed = True


class FakeVisionClient:
    """Fake image annotation client.

    Implements VisionClientProtocol; returns a configured annotation result
    or the static fallback payload.
    """

    def __init__(self, result: dict[str, Any] | None = None) -> None:
        self._result = result
        self.call_history: list[dict[str, Any]] = []
        self.closed = False

    async def annotate(self, image_bytes: bytes) -> dict[str, Any]:
        self.call_history.append({"method": "annotate", "size": len(image_bytes)})
        await asyncio.sleep(0)
        return self._result if self._result is not None else get_fallback_vision_response()

    async def annotate_url(self, image_url: str) -> dict[str, Any]:
        self.call_history.append({"method": "annotate_url", "image_url": image_url})
        await asyncio.sleep(0)
        return self._result if self._result is not None else get_fallback_vision_response()

    async def close(self) -> None:
        self.closed = True
