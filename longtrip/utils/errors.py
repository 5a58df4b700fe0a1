"""
Error taxonomy for long trip generation.

Only TripValidationError is meant to reach callers. Provider errors are
recovered per chunk by the orchestrator and BudgetExceededError is the
pre-flight circuit breaker that switches the handler to emergency fallback.
"""

from typing import List, Optional


class LongTripError(Exception):
    """Base exception for the long trip planner."""

    def __init__(self, detail: str = "Long trip planner error") -> None:
        super().__init__(detail)
        self.detail = detail


class TripValidationError(LongTripError):
    """Raised when a trip is missing data needed to plan anything at all."""

    def __init__(self, detail: str = "Trip validation failed", errors: Optional[List[str]] = None) -> None:
        super().__init__(detail)
        self.errors = errors or []

    def __str__(self) -> str:
        if self.errors:
            return f"{self.detail}: {'; '.join(self.errors)}"
        return self.detail


class ProviderError(LongTripError):
    """The AI provider failed to produce usable content."""

    def __init__(self, detail: str = "AI provider error") -> None:
        super().__init__(detail)


class TransientProviderError(ProviderError):
    """Rate limits, unavailability and similar errors worth retrying."""

    def __init__(self, detail: str = "Transient AI provider error") -> None:
        super().__init__(detail)


class ProviderTimeoutError(ProviderError):
    """The provider call exceeded its time allowance."""

    def __init__(self, detail: str = "AI provider call timed out") -> None:
        super().__init__(detail)


class ResponseParseError(ProviderError):
    """Provider output could not be parsed or failed shape validation."""

    def __init__(self, detail: str = "Invalid AI response") -> None:
        super().__init__(detail)


class BudgetExceededError(LongTripError):
    """Pre-flight token estimate is above the configured ceiling."""

    def __init__(self, estimated_tokens: int, ceiling: int) -> None:
        super().__init__(
            f"Estimated {estimated_tokens:,} tokens exceeds ceiling of {ceiling:,} tokens"
        )
        self.estimated_tokens = estimated_tokens
        self.ceiling = ceiling
