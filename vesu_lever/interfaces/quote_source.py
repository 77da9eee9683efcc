"""Quote source protocol — AMM routing abstraction."""
from typing import Protocol

from ..models import QuoteUnavailable, SwapQuote


class QuoteSource(Protocol):
    """Routed swap quotes; implementations never raise."""

    async def request_quote(
        self, token_in: str, token_out: str, amount: int, exact_in: bool
    ) -> SwapQuote | QuoteUnavailable: ...
