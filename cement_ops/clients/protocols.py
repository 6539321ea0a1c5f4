"""Service client protocols.

Duck typing protocols for external clients - enables fake substitution in tests.

Pattern: Protocol duck typing
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:
    from cement_ops.clients.gemini import ChatMessage


@runtime_checkable
class ModelGatewayProtocol(Protocol):
    """Single-call contract of the generative model.

    Methods:
        generate: Send one prompt and return the raw model text
    """

    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt.

        Args:
            prompt: Fully rendered prompt string

        Returns:
            Raw model text (may contain code fences)

        Raises:
            ModelTransportError: When the remote call fails or times out
        """
        ...


@runtime_checkable
class ChatModelProtocol(Protocol):
    """Multi-turn contract used by the operations chat."""

    async def chat(self, messages: list[ChatMessage]) -> str:
        """Generate the next assistant turn for a conversation."""
        ...


@runtime_checkable
class VisionClientProtocol(Protocol):
    """Image annotation contract.

    Implementations never raise on transport failure; they return the
    documented fallback payload instead so flame analysis stays non-blocking.
    """

    async def annotate(self, image_bytes: bytes) -> dict[str, Any]:
        """Annotate an image and return the raw annotation payload."""
        ...

    async def annotate_url(self, image_url: str) -> dict[str, Any]:
        """Download an image and annotate it."""
        ...
