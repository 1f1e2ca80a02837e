"""Session spending ceiling and the per-run session context."""

import logging
from dataclasses import dataclass, field

from .config import Settings
from .cost_estimator import calculate_cost
from .errors import BudgetExceededError
from .llm_client import CompletionClient
from .prompts import prompt_text
from .token_estimator import estimate_tokens

logger = logging.getLogger(__name__)


class SessionBudgetGuard:
    """Track actual spending across a session against a user ceiling.

    The check happens at dispatch time and nothing is reserved in advance, so
    concurrent calls in one batch can overrun the ceiling by the calls already
    in flight.
    """

    def __init__(self, ceiling: float, settings: Settings | None = None):
        self.ceiling = ceiling
        self.settings = settings or Settings()
        self.spent = 0.0
        self.calls = 0

    def can_proceed(self) -> bool:
        return self.spent < self.ceiling

    def check(self) -> None:
        """Raise if the ceiling is already met or exceeded."""
        if not self.can_proceed():
            logger.warning("Budget ceiling reached: $%.4f of $%.2f", self.spent, self.ceiling)
            raise BudgetExceededError(self.ceiling, self.spent)

    def record_usage(self, tokens: int, model: str) -> float:
        """Add the cost of a completed call and return that cost."""
        input_cost, output_cost = calculate_cost(
            tokens, model, self.settings.pricing, self.settings.output_ratio
        )
        cost = input_cost + output_cost
        self.spent += cost
        self.calls += 1
        logger.debug("Recorded %d tokens on %s: $%.4f (session $%.4f)", tokens, model, cost, self.spent)
        return cost

    def raise_ceiling(self, ceiling: float) -> None:
        self.ceiling = ceiling

    def reset(self) -> None:
        self.spent = 0.0
        self.calls = 0

    @property
    def remaining(self) -> float:
        return self.ceiling - self.spent


@dataclass
class GenerationSession:
    """Everything one report run needs, created at run start and discarded after."""

    model: str
    settings: Settings = field(default_factory=Settings)
    budget: float = 5.0
    guard: SessionBudgetGuard = field(init=False)

    def __post_init__(self):
        self.guard = SessionBudgetGuard(self.budget, self.settings)

    async def complete(
        self,
        client: CompletionClient,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> tuple[str, int, bool]:
        """Budget-gated LLM call charged to this session.

        Returns:
            The generated text, the tokens recorded, and whether that count
            was estimated because the provider reported no usage.

        Raises:
            BudgetExceededError: If the ceiling is already reached.
            ProviderError: If the call fails.
        """
        model = model or self.model
        self.guard.check()

        completion = await client.complete(messages, model=model, temperature=temperature, max_tokens=max_tokens)
        if completion.usage is not None:
            tokens = completion.usage.total_tokens
            estimated = False
        else:
            tokens = estimate_tokens(prompt_text(messages) + completion.text, self.settings.chars_per_token)
            estimated = True

        cost = self.guard.record_usage(tokens, model)
        logger.debug(
            "LLM call on %s: %d tokens (%s), $%.4f",
            model,
            tokens,
            "estimated" if estimated else "reported",
            cost,
        )
        return completion.text, tokens, estimated
