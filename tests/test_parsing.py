"""Tests for pulling structured results out of model output."""

import pytest

from cozy.ai.compatibility import fallback_result
from cozy.ai.parsing import (
    CompatibilityResult,
    ConversationAnalysis,
    extract_json_object,
    parse_or_default,
)

VALID = (
    '{"compatibilityScore": 82, "compatibilityReasons": ["Both love hiking"],'
    ' "potentialChallenges": ["Different schedules"],'
    ' "recommendedActivities": ["Trail walk"]}'
)
DEFAULT = {"compatibilityScore": 75, "compatibilityReasons": ["fallback"]}


# -- extract_json_object -------------------------------------------------------


def test_plain_json() -> None:
    assert extract_json_object('{"a": 1}') == {"a": 1}


def test_fenced_json() -> None:
    text = 'Here you go:\n```json\n{"a": 1}\n```\nHope that helps!'
    assert extract_json_object(text) == {"a": 1}


def test_fence_without_language() -> None:
    assert extract_json_object('```\n{"a": [1, 2]}\n```') == {"a": [1, 2]}


def test_json_embedded_in_prose() -> None:
    assert extract_json_object('Sure! {"a": {"b": 2}} Let me know.') == {"a": {"b": 2}}


@pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2, 3]", "{not: json}"])
def test_no_object(text: str) -> None:
    assert extract_json_object(text) is None


# -- parse_or_default ------------------------------------------------------------


def test_valid_output_is_parsed() -> None:
    parsed = parse_or_default(VALID, CompatibilityResult, DEFAULT)
    assert not parsed.fallback_used
    assert parsed.value.compatibility_score == 82
    assert parsed.to_payload() == {
        "compatibilityScore": 82,
        "compatibilityReasons": ["Both love hiking"],
        "potentialChallenges": ["Different schedules"],
        "recommendedActivities": ["Trail walk"],
    }


def test_prose_falls_back() -> None:
    parsed = parse_or_default("I think they'd get along.", CompatibilityResult, DEFAULT)
    assert parsed.fallback_used
    assert parsed.to_payload() == DEFAULT
    assert parsed.raw == "I think they'd get along."


@pytest.mark.parametrize(
    "text",
    [
        '{"compatibilityScore": 150, "compatibilityReasons": []}',
        '{"compatibilityScore": "high", "compatibilityReasons": []}',
        '{"compatibilityReasons": ["missing score"]}',
    ],
)
def test_invalid_shape_falls_back(text: str) -> None:
    parsed = parse_or_default(text, CompatibilityResult, DEFAULT)
    assert parsed.fallback_used
    assert parsed.value == DEFAULT


def test_float_score_is_rounded() -> None:
    parsed = parse_or_default(
        '{"compatibilityScore": 77.6, "compatibilityReasons": ["x"]}', CompatibilityResult, DEFAULT
    )
    assert parsed.value.compatibility_score == 78


@pytest.mark.parametrize("score", ["Infinity", "-Infinity", "NaN"])
def test_non_finite_score_falls_back(score: str) -> None:
    text = f'{{"compatibilityScore": {score}, "compatibilityReasons": ["x"]}}'
    parsed = parse_or_default(text, CompatibilityResult, DEFAULT)
    assert parsed.fallback_used
    assert parsed.value == DEFAULT


@pytest.mark.parametrize("text", ["[" * 100_000, "{\"a\": " * 100_000 + "1" + "}" * 100_000])
def test_deeply_nested_output_falls_back(text: str) -> None:
    parsed = parse_or_default(text, CompatibilityResult, DEFAULT)
    assert parsed.fallback_used
    assert parsed.value == DEFAULT


def test_snake_case_keys_accepted() -> None:
    parsed = parse_or_default(
        '{"conversation_quality": "good", "engagement_level": "high"}',
        ConversationAnalysis,
        {},
    )
    assert not parsed.fallback_used
    assert parsed.to_payload()["engagementLevel"] == "high"


# -- compatibility fallback ------------------------------------------------------


def test_fallback_score_in_range() -> None:
    for _ in range(50):
        result = fallback_result("raw text")
        assert 70 <= result["compatibilityScore"] < 90
        assert result["compatibilityReasons"]
        assert result["aiResponse"] == "raw text"


def test_fallback_with_explicit_score() -> None:
    assert fallback_result("", score=40)["compatibilityScore"] == 40
