"""Unit tests for the response parser."""

import json

import pytest

from cement_ops.advisory.parser import (
    decode_stage_output,
    parse_agent_response,
    strip_code_fences,
)
from cement_ops.advisory.schemas import (
    OptimizationOutput,
    ParseError,
    SchemaError,
    StageOk,
)
from cement_ops.core.constants import StageName


class TestStripCodeFences:
    def test_removes_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_removes_plain_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_leaves_unfenced_text(self) -> None:
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseAgentResponse:
    """parse_agent_response never raises."""

    def test_parses_fenced_json(self) -> None:
        result = parse_agent_response('```json\n{"issues":["x"],"observations":[]}\n```')

        assert result == {"issues": ["x"], "observations": []}

    def test_parses_plain_json(self) -> None:
        assert parse_agent_response('{"decision": "approved"}') == {"decision": "approved"}

    @pytest.mark.parametrize("text", [None, "", "   \n  "])
    def test_empty_text_is_parse_error(self, text: str | None) -> None:
        result = parse_agent_response(text)

        assert isinstance(result, ParseError)
        assert result.error == "Empty response from agent"
        assert result.raw == text

    def test_invalid_json_keeps_fence_stripped_raw(self) -> None:
        result = parse_agent_response("```json\n{not valid}\n```")

        assert result == ParseError(error="Invalid JSON returned by agent", raw="{not valid}")

    def test_only_fences_is_empty(self) -> None:
        result = parse_agent_response("```json\n```")

        assert isinstance(result, ParseError)
        assert result.error == "Empty response from agent"

    @pytest.mark.parametrize(
        "value",
        [
            {"issues": [], "observations": ["stable"]},
            {"action": "Trim fuel", "expected_energy_delta_kwh_ton": -1.5, "confidence": 0.8},
            {"risk_level": "low", "decision": "approved", "reason": "ok", "notes": None},
            {"nested": {"fuel_mix": [{"fuel": "coal", "pct": 60}]}, "unicode": "Größe"},
        ],
    )
    @pytest.mark.parametrize(
        "wrap",
        [
            lambda text: text,
            lambda text: f"```json\n{text}\n```",
            lambda text: f"```\n{text}\n```",
            lambda text: f"  \n{text}\n  ",
        ],
        ids=["plain", "json-fence", "bare-fence", "whitespace"],
    )
    def test_serialized_object_parses_back(self, value, wrap) -> None:
        assert parse_agent_response(wrap(json.dumps(value, indent=2))) == value


class TestDecodeStageOutput:
    def test_valid_output_is_stage_ok(self) -> None:
        text = (
            '{"action":"Lower ID fan speed","expected_energy_delta_kwh_ton":-0.8,'
            '"confidence":0.7,"quality_impact":"minor"}'
        )

        result = decode_stage_output(StageName.OPTIMIZATION, text)

        assert isinstance(result, StageOk)
        assert isinstance(result.value, OptimizationOutput)
        assert result.data["action"] == "Lower ID fan speed"

    def test_wrong_shape_is_schema_error(self) -> None:
        result = decode_stage_output(StageName.SAFETY, '{"risk_level":"extreme"}')

        assert isinstance(result, SchemaError)
        assert result.data == {"risk_level": "extreme"}
        assert any(error.startswith("risk_level") for error in result.errors)
        assert any(error.startswith("decision") for error in result.errors)

    def test_confidence_out_of_range_is_schema_error(self) -> None:
        text = (
            '{"action":"x","expected_energy_delta_kwh_ton":-1,'
            '"confidence":1.5,"quality_impact":"minor"}'
        )

        assert isinstance(decode_stage_output(StageName.OPTIMIZATION, text), SchemaError)

    def test_unparseable_is_parse_error(self) -> None:
        result = decode_stage_output(StageName.KILN, "not json at all")

        assert isinstance(result, ParseError)
