"""External service clients (generative model, image annotation)."""

from cement_ops.clients.gemini import ChatMessage, GeminiClient, create_gemini_client
from cement_ops.clients.protocols import (
    ChatModelProtocol,
    ModelGatewayProtocol,
    VisionClientProtocol,
)
from cement_ops.clients.vision import (
    VisionClient,
    VisionSummary,
    create_vision_client,
    get_fallback_vision_response,
    summarize_vision_result,
)


__all__ = [
    "ChatMessage",
    "ChatModelProtocol",
    "GeminiClient",
    "ModelGatewayProtocol",
    "VisionClient",
    "VisionClientProtocol",
    "VisionSummary",
    "create_gemini_client",
    "create_vision_client",
    "get_fallback_vision_response",
    "summarize_vision_result",
]
