"""Tests for model name resolution."""

import pytest

from cozy.llm.models import FRIENDLY_NAMES, MODEL_MAP, friendly, resolve_model


def test_resolve_friendly_name() -> None:
    assert resolve_model("opus") == MODEL_MAP["opus"]


def test_resolve_full_id_passes_through() -> None:
    assert resolve_model(MODEL_MAP["sonnet"]) == MODEL_MAP["sonnet"]


def test_resolve_default_uses_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("cozy.config.settings.ai_model", "sonnet")
    assert resolve_model() == MODEL_MAP["sonnet"]


def test_unknown_model_falls_back_to_haiku() -> None:
    assert resolve_model("gpt-4") == MODEL_MAP["haiku"]


def test_friendly() -> None:
    assert friendly(MODEL_MAP["haiku"]) == "haiku"
    assert friendly("something-else") == "something-else"
    assert set(FRIENDLY_NAMES.values()) == set(MODEL_MAP)
