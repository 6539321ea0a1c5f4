"""Response parser for model text.

Model replies are expected to be a single JSON object, sometimes wrapped in
Markdown code fences. ``parse_agent_response`` never raises: anything that is
empty or not valid JSON comes back as a ParseError value.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from cement_ops.advisory.schemas import (
    AgentFindings,
    OptimizationOutput,
    ParseError,
    SafetyOutput,
    SchemaError,
    StageOk,
)
from cement_ops.core.constants import EMPTY_RESPONSE_ERROR, INVALID_JSON_ERROR, StageName


if TYPE_CHECKING:
    from pydantic import BaseModel

    from cement_ops.advisory.schemas import DecodedOutput


_LEADING_FENCE = re.compile(r"^\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```\s*$")

STAGE_SCHEMAS: dict[StageName, type[BaseModel]] = {
    StageName.KILN: AgentFindings,
    StageName.RAW_MILL: AgentFindings,
    StageName.CEMENT_MILL: AgentFindings,
    StageName.ENERGY: AgentFindings,
    StageName.TELEMETRY_SUPER: AgentFindings,
    StageName.OPTIMIZATION: OptimizationOutput,
    StageName.SAFETY: SafetyOutput,
}


def strip_code_fences(text: str) -> str:
    """Remove leading/trailing ``` or ```json markers and surrounding whitespace."""
    stripped = _LEADING_FENCE.sub("", text, count=1)
    stripped = _TRAILING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def parse_agent_response(text: str | None) -> Any | ParseError:
    """Parse model text as JSON.

    Args:
        text: Raw model text

    Returns:
        The parsed JSON value, or ParseError when the text is empty or not
        valid JSON. ``raw`` holds the fence-stripped text.
    """
    if text is None or not text.strip():
        return ParseError(error=EMPTY_RESPONSE_ERROR, raw=text)

    cleaned = strip_code_fences(text)
    if not cleaned:
        return ParseError(error=EMPTY_RESPONSE_ERROR, raw=text)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        return ParseError(error=INVALID_JSON_ERROR, raw=cleaned)


def _format_validation_errors(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        messages.append(f"{location}: {error.get('msg', 'invalid value')}")
    return messages


def validate_stage_data(stage: StageName, data: Any) -> StageOk | SchemaError:
    """Validate already-parsed JSON against the stage schema."""
    schema = STAGE_SCHEMAS[stage]
    try:
        return StageOk(value=schema.model_validate(data), data=data)
    except ValidationError as exc:
        return SchemaError(errors=_format_validation_errors(exc), data=data)


def decode_stage_output(stage: StageName, text: str | None) -> DecodedOutput:
    """Parse and schema-validate a stage reply.

    Returns:
        StageOk, SchemaError (valid JSON, wrong shape) or ParseError
    """
    parsed = parse_agent_response(text)
    if isinstance(parsed, ParseError):
        return parsed
    return validate_stage_data(stage, parsed)
