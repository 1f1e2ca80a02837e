"""Token-to-money estimation and rate-limit checks."""

from dataclasses import dataclass

from .config import PricingTable

# Output volume is assumed to be 30% of input volume
DEFAULT_OUTPUT_RATIO = 0.3


@dataclass(frozen=True)
class CostEstimate:
    """Estimated cost in USD, rounded to cents."""

    input_cost: float
    output_cost: float
    total_cost: float


@dataclass(frozen=True)
class RateLimitStatus:
    within_limit: bool
    limit: int
    tokens: int
    percentage: float


def calculate_cost(
    tokens: int,
    model: str,
    pricing: PricingTable | None = None,
    output_ratio: float = DEFAULT_OUTPUT_RATIO,
) -> tuple[float, float]:
    """Unrounded (input cost, output cost) in USD for a token count.

    Args:
        tokens: Input token volume.
        model: Model identifier; unknown models use the table's fallback entry.
        pricing: Price table. Defaults to the built-in prices.
        output_ratio: Output volume as a fraction of input volume.

    Returns:
        Tuple of (input cost, output cost) in USD.
    """
    price = (pricing or PricingTable()).price_for(model)
    tokens = max(tokens, 0)
    input_cost = tokens / 1000 * price.input
    output_cost = tokens / 1000 * price.output * output_ratio
    return input_cost, output_cost


def estimate_cost(
    tokens: int,
    model: str,
    pricing: PricingTable | None = None,
    output_ratio: float = DEFAULT_OUTPUT_RATIO,
) -> CostEstimate:
    """Estimate the cost of a token volume for display."""
    input_cost, output_cost = calculate_cost(tokens, model, pricing, output_ratio)
    return CostEstimate(
        input_cost=round(input_cost, 2),
        output_cost=round(output_cost, 2),
        total_cost=round(input_cost + output_cost, 2),
    )


def check_rate_limits(tokens: int, model: str, pricing: PricingTable | None = None) -> RateLimitStatus:
    """Compare a projected token count against the model's tokens-per-minute ceiling."""
    limit = (pricing or PricingTable()).price_for(model).tpm
    return RateLimitStatus(
        within_limit=tokens <= limit,
        limit=limit,
        tokens=tokens,
        percentage=round(tokens / limit * 100, 1),
    )
