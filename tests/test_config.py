"""Tests for settings and the pricing table."""

import json

import pytest

from verslag.config import DEFAULT_PRICES, PricingTable, Settings, load_pricing_file, load_settings_file
from verslag.errors import InputValidationError
from verslag.prompts import ASSISTANT_SYSTEM_PROMPT, SECTION_SYSTEM_PROMPT


def test_concurrency_windows():
    settings = Settings()
    assert settings.concurrency_for("gpt-4o-mini") == 5
    assert settings.concurrency_for("gpt-4o") == 3
    assert Settings(sequential=True).concurrency_for("gpt-4o-mini") == 1


def test_unknown_model_falls_back():
    assert PricingTable().price_for("mystery") == DEFAULT_PRICES["gpt-4o"]


def test_pricing_file_overrides_and_extends(tmp_path):
    path = tmp_path / "prices.json"
    path.write_text(
        json.dumps({"models": {"gpt-4o": {"input": 0.0025, "output": 0.01}, "local": {"input": 0, "output": 0, "tpm": 1}}}),
        encoding="utf-8",
    )
    table = load_pricing_file(path)
    assert table.price_for("gpt-4o").input == 0.0025
    assert table.price_for("gpt-4o").tpm == 30000
    assert table.price_for("local").tpm == 1
    assert table.price_for("gpt-4") == DEFAULT_PRICES["gpt-4"]


def test_malformed_pricing_file(tmp_path):
    path = tmp_path / "prices.json"
    path.write_text('{"models": {"x": {"input": 1}}}', encoding="utf-8")
    with pytest.raises(InputValidationError):
        load_pricing_file(path)


def test_pricing_file_rejects_non_positive_tpm(tmp_path):
    path = tmp_path / "prices.json"
    path.write_text('{"models": {"local": {"input": 0, "output": 0, "tpm": 0}}}', encoding="utf-8")
    with pytest.raises(InputValidationError, match="tpm"):
        load_pricing_file(path)


def test_settings_file_overrides_prompts(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "prompts": {"review": "Merge the sections into a memo."},
                "models": {"local": {"input": 0, "output": 0, "tpm": 5000}},
            }
        ),
        encoding="utf-8",
    )
    settings = load_settings_file(path, Settings(sequential=True))
    assert settings.review_prompt == "Merge the sections into a memo."
    assert settings.section_prompt == SECTION_SYSTEM_PROMPT
    assert settings.assistant_prompt == ASSISTANT_SYSTEM_PROMPT
    assert settings.sequential
    assert settings.pricing.price_for("local").tpm == 5000


@pytest.mark.parametrize(
    "prompts",
    [{"intro": "Write an intro."}, {"section": "   "}, {"assistant": 42}],
)
def test_settings_file_rejects_bad_prompts(tmp_path, prompts):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"prompts": prompts}), encoding="utf-8")
    with pytest.raises(InputValidationError):
        load_settings_file(path)
