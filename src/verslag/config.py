"""Tunable limits, system prompts, model price table and rate limits."""

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path

from .errors import InputValidationError
from .prompts import ASSISTANT_SYSTEM_PROMPT, REVIEW_SYSTEM_PROMPT, SECTION_SYSTEM_PROMPT


@dataclass(frozen=True)
class ModelPrice:
    """USD per 1000 tokens, plus the provider's tokens-per-minute ceiling."""

    input: float
    output: float
    tpm: int = 30000


# Approximate prices per 1K tokens and TPM ceilings
DEFAULT_PRICES: dict[str, ModelPrice] = {
    "gpt-4o": ModelPrice(0.005, 0.015, 30000),
    "gpt-4o-mini": ModelPrice(0.00015, 0.0006, 200000),
    "gpt-4-turbo": ModelPrice(0.01, 0.03, 30000),
    "gpt-4": ModelPrice(0.03, 0.06, 10000),
    "o1-preview": ModelPrice(0.015, 0.06, 20000),
    "o1-mini": ModelPrice(0.003, 0.012, 100000),
}
DEFAULT_MODEL = "gpt-4o"
SUMMARY_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class PricingTable:
    """Swappable per-model price table with a fallback entry for unknown models."""

    prices: dict[str, ModelPrice] = field(default_factory=lambda: dict(DEFAULT_PRICES))
    fallback: str = DEFAULT_MODEL

    def price_for(self, model: str) -> ModelPrice:
        if model in self.prices:
            return self.prices[model]
        return self.prices.get(self.fallback, DEFAULT_PRICES[DEFAULT_MODEL])

    def with_overrides(self, overrides: dict[str, ModelPrice]) -> "PricingTable":
        merged = dict(self.prices)
        merged.update(overrides)
        return PricingTable(prices=merged, fallback=self.fallback)


def _parse_prices(models: dict) -> dict[str, ModelPrice]:
    prices = {}
    for name, entry in models.items():
        price = ModelPrice(
            input=float(entry["input"]),
            output=float(entry["output"]),
            tpm=int(entry.get("tpm", 30000)),
        )
        if price.tpm <= 0:
            raise ValueError(f"tpm for {name!r} must be positive, got {price.tpm}")
        prices[name] = price
    return prices


def load_pricing_file(path: Path, base: PricingTable | None = None) -> PricingTable:
    """Load a JSON price table and merge it over the defaults.

    Expected shape: ``{"models": {"name": {"input": 0.005, "output": 0.015, "tpm": 30000}}}``.

    Args:
        path: JSON file to read.
        base: Table to merge into. Defaults to the built-in prices.

    Returns:
        The merged pricing table.

    Raises:
        InputValidationError: If the file is unreadable or malformed.
    """
    base = base or PricingTable()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        overrides = _parse_prices(data["models"])
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise InputValidationError(f"Invalid pricing file {path}: {e}") from e
    return base.with_overrides(overrides)


@dataclass(frozen=True)
class Settings:
    """Every tunable of the estimation and generation pipeline."""

    chars_per_token: int = 4
    max_document_tokens: int = 3000
    max_section_tokens: int = 8000
    max_review_tokens: int = 15000
    max_global_tokens: int = 10000
    call_overhead_tokens: int = 500
    overview_context_share: float = 0.3
    max_overview_context_tokens: int = 5000
    review_share: float = 0.3
    partial_threshold_tokens: int = 500
    partial_margin_tokens: int = 100
    output_ratio: float = 0.3

    # Concurrency windows: cheaper models get a wider window
    fast_model_concurrency: int = 5
    default_concurrency: int = 3
    sequential: bool = False

    section_temperature: float = 0.7
    section_max_tokens: int = 4000
    review_temperature: float = 0.5
    review_max_tokens: int = 8000
    assistant_temperature: float = 0.8
    assistant_max_tokens: int = 2000

    overview_preview_chars: int = 1000
    max_upload_bytes: int = 10 * 1024 * 1024
    summarize_oversized: bool = False
    summary_model: str = SUMMARY_MODEL

    # System prompts; the section prompt gets the title and format rules appended
    section_prompt: str = SECTION_SYSTEM_PROMPT
    review_prompt: str = REVIEW_SYSTEM_PROMPT
    assistant_prompt: str = ASSISTANT_SYSTEM_PROMPT

    pricing: PricingTable = field(default_factory=PricingTable)

    def concurrency_for(self, model: str) -> int:
        """Number of section calls issued together for the given model."""
        if self.sequential:
            return 1
        if "mini" in model:
            return self.fast_model_concurrency
        return self.default_concurrency


PROMPT_KEYS = {"section": "section_prompt", "review": "review_prompt", "assistant": "assistant_prompt"}


def load_settings_file(path: Path, base: Settings | None = None) -> Settings:
    """Load system prompts and prices from a JSON settings file.

    Expected shape (both keys optional)::

        {"prompts": {"section": "...", "review": "...", "assistant": "..."},
         "models": {"name": {"input": 0.005, "output": 0.015, "tpm": 30000}}}

    Raises:
        InputValidationError: If the file is unreadable, malformed, has an
            unknown prompt key or an empty prompt.
    """
    base = base or Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        prompts = data.get("prompts", {})
        overrides = {}
        for key, text in prompts.items():
            if key not in PROMPT_KEYS:
                raise ValueError(f"unknown prompt {key!r}, expected one of {', '.join(PROMPT_KEYS)}")
            if not isinstance(text, str) or not text.strip():
                raise ValueError(f"prompt {key!r} must be a non-empty string")
            overrides[PROMPT_KEYS[key]] = text
        prices = _parse_prices(data.get("models", {}))
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise InputValidationError(f"Invalid settings file {path}: {e}") from e
    return dataclasses.replace(base, pricing=base.pricing.with_overrides(prices), **overrides)
