"""Error taxonomy for the leverage pipeline."""
from __future__ import annotations


class LeverError(Exception):
    """Base class for every fail-closed pipeline error.

    ``step`` names the pipeline state that raised, so callers can report
    where a request stopped without parsing the message.
    """

    step = "unknown"

    def __init__(self, message: str, step: str | None = None) -> None:
        super().__init__(message)
        if step is not None:
            self.step = step


class ConfigError(LeverError, ValueError):
    step = "config"


class PoolResolutionError(LeverError):
    step = "resolve_pool"


class AssetNotFoundError(LeverError):
    step = "resolve_pool"


class PriceInvalidError(LeverError):
    step = "resolve_prices"


class PositionNotFoundError(LeverError):
    step = "fetch_position"


class LTVBoundsError(LeverError):
    step = "solve_deltas"


class ZeroAmountError(LeverError):
    step = "solve_deltas"


class RoutingRequiredError(LeverError):
    """Raised when an operation cannot be composed without a swap route."""

    step = "request_quote"


class ChainExecutionError(LeverError):
    step = "submit"


class QuoteDegradedWarning(UserWarning):
    """Advisory: the swap quote was unavailable and the batch carries no route."""
