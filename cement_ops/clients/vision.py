"""Image annotation client for kiln flame images.

Calls the image annotation REST API with label, object, image-property,
crop-hint and safe-search features. Any failure (download, HTTP, network)
is logged and answered with a static fallback payload flagged
``_fallback: True`` so flame analysis never blocks on the vision service.
"""

from __future__ import annotations

import base64
import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from cement_ops.core.exceptions import VisionClientError
from cement_ops.core.logging import get_logger


if TYPE_CHECKING:
    from cement_ops.core.config import Settings


logger = get_logger(__name__)


ANNOTATION_FEATURES: list[dict[str, Any]] = [
    {"type": "LABEL_DETECTION", "maxResults": 10},
    {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
    {"type": "IMAGE_PROPERTIES"},
    {"type": "CROP_HINTS", "maxResults": 1},
    {"type": "SAFE_SEARCH_DETECTION"},
]

FALLBACK_VISION_RESPONSE: dict[str, Any] = {
    "responses": [
        {
            "labelAnnotations": [
                {"description": "red", "score": 0.92},
                {"description": "orange", "score": 0.88},
                {"description": "yellow", "score": 0.84},
            ],
            "localizedObjectAnnotations": [
                {
                    "name": "Truck",
                    "score": 0.90,
                    "boundingPoly": {
                        "normalizedVertices": [
                            {"x": 0.1, "y": 0.4},
                            {"x": 0.8, "y": 0.4},
                            {"x": 0.8, "y": 0.7},
                            {"x": 0.1, "y": 0.7},
                        ],
                    },
                },
            ],
            "imagePropertiesAnnotation": {
                "dominantColors": {
                    "colors": [
                        {
                            "color": {"red": 40, "green": 40, "blue": 40},
                            "score": 0.6,
                            "pixelFraction": 0.5,
                        },
                        {
                            "color": {"red": 120, "green": 60, "blue": 180},
                            "score": 0.4,
                            "pixelFraction": 0.3,
                        },
                    ],
                },
            },
            "cropHintsAnnotation": {
                "cropHints": [
                    {
                        "boundingPoly": {
                            "normalizedVertices": [
                                {"x": 0.05, "y": 0.05},
                                {"x": 0.95, "y": 0.05},
                                {"x": 0.95, "y": 0.95},
                                {"x": 0.05, "y": 0.95},
                            ],
                        },
                    },
                ],
            },
            "safeSearchAnnotation": {
                "adult": "VERY_UNLIKELY",
                "violence": "UNLIKELY",
                "racy": "VERY_UNLIKELY",
            },
        },
    ],
    "_fallback": True,
}


def get_fallback_vision_response() -> dict[str, Any]:
    """Return a fresh copy of the static fallback annotation payload."""
    return copy.deepcopy(FALLBACK_VISION_RESPONSE)


# =============================================================================
# Annotation Summary
# =============================================================================

@dataclass
class VisionSummary:
    """Flame indicators extracted from an annotation payload.

    Attributes:
        labels: Label descriptions
        objects: ``name(score%)`` strings for localized objects
        dominant_colors: ``rgb(r,g,b):fraction%`` strings, top three
        smoke_likelihood: Safe-search smoke likelihood or UNKNOWN
        fallback: True when the payload is the static fallback
    """

    labels: list[str] = field(default_factory=list)
    objects: list[str] = field(default_factory=list)
    dominant_colors: list[str] = field(default_factory=list)
    smoke_likelihood: str = "UNKNOWN"
    fallback: bool = False


def summarize_vision_result(result: dict[str, Any]) -> VisionSummary:
    """Extract the flame indicators the kiln analysis prompt needs."""
    responses = result.get("responses") or [{}]
    first = responses[0] if isinstance(responses[0], dict) else {}

    labels = [
        str(label.get("description"))
        for label in first.get("labelAnnotations", [])
        if label.get("description")
    ]
    objects = [
        f"{obj.get('name')}({round(float(obj.get('score', 0)) * 100)}%)"
        for obj in first.get("localizedObjectAnnotations", [])
    ]
    colors = (
        first.get("imagePropertiesAnnotation", {})
        .get("dominantColors", {})
        .get("colors", [])
    )
    dominant_colors = [
        "rgb({red},{green},{blue}):{fraction:.1f}%".format(
            red=entry.get("color", {}).get("red", 0),
            green=entry.get("color", {}).get("green", 0),
            blue=entry.get("color", {}).get("blue", 0),
            fraction=float(entry.get("pixelFraction", 0)) * 100,
        )
        for entry in colors[:3]
    ]
    smoke = first.get("safeSearchAnnotation", {}).get("smokeLikelihood") or "UNKNOWN"

    return VisionSummary(
        labels=labels,
        objects=objects,
        dominant_colors=dominant_colors,
        smoke_likelihood=smoke,
        fallback=bool(result.get("_fallback", False)),
    )


# =============================================================================
# Vision Client
# =============================================================================

class VisionClient:
    """Async image annotation client with static fallback."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str = "https://vision.googleapis.com/v1/images:annotate",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Release HTTP client resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def annotate(self, image_bytes: bytes) -> dict[str, Any]:
        """Annotate image bytes; returns the fallback payload on failure."""
        try:
            return await self._request_annotation(image_bytes)
        except VisionClientError as exc:
            logger.warning("Using fallback vision data", error=exc.message)
            return get_fallback_vision_response()

    async def annotate_url(self, image_url: str) -> dict[str, Any]:
        """Download an image and annotate it; returns the fallback on failure."""
        try:
            response = await self._get_client().get(image_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Using fallback vision data", image_url=image_url, error=str(exc))
            return get_fallback_vision_response()
        return await self.annotate(response.content)

    async def _request_annotation(self, image_bytes: bytes) -> dict[str, Any]:
        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": ANNOTATION_FEATURES,
                }
            ]
        }
        params = {"key": self._api_key} if self._api_key else None
        try:
            response = await self._get_client().post(self.api_url, params=params, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise VisionClientError(
                f"Vision API failed with HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise VisionClientError(f"Vision API transport error: {exc}") from exc
        except ValueError as exc:
            raise VisionClientError("Vision API returned a non-JSON body") from exc

        if not isinstance(payload, dict):
            raise VisionClientError("Vision API returned an unexpected payload")
        return payload


def create_vision_client(settings: Settings) -> VisionClient:
    """Create the vision client from settings."""
    api_key = settings.vision_api_key.get_secret_value() if settings.vision_api_key else None
    return VisionClient(
        api_key=api_key,
        api_url=settings.vision_api_url,
        timeout=settings.vision_timeout_seconds,
    )
