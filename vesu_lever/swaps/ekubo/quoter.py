"""Ekubo quoting API client."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from ...chains.starknet.address import normalize_address
from ...config import EkuboConfig
from ...models import QuoteUnavailable, SwapQuote
from . import parser

logger = logging.getLogger(__name__)


class EkuboQuoter:
    """Fetch routed swap quotes from the Ekubo HTTP quoter."""

    def __init__(self, config: EkuboConfig) -> None:
        self.quoter_url = config.quoter_url.rstrip("/")
        self.timeout = config.http_timeout

    def quote_url(self, token_in: str, token_out: str, amount: int, exact_in: bool) -> str:
        """``{base}/{signedAmount}/{specifiedToken}/{otherToken}``.

        A positive amount is an exact input of the first token; a negative
        amount is an exact output of it.
        """
        if exact_in:
            return f"{self.quoter_url}/{amount}/{token_in}/{token_out}"
        return f"{self.quoter_url}/{-amount}/{token_out}/{token_in}"

    async def request_quote(
        self, token_in: str, token_out: str, amount: int, exact_in: bool
    ) -> SwapQuote | QuoteUnavailable:
        """Request a quote; every failure is returned as QuoteUnavailable."""
        if amount <= 0:
            return QuoteUnavailable(f"Non-positive swap amount {amount}")

        try:
            token_in = normalize_address(token_in)
            token_out = normalize_address(token_out)
        except ValueError as e:
            return QuoteUnavailable(str(e))

        url = self.quote_url(token_in, token_out, amount, exact_in)
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.warning(
                            "Ekubo quote request failed: HTTP %s", response.status
                        )
                        return QuoteUnavailable(f"HTTP {response.status}")
                    data = await response.json()
        except Exception as e:
            logger.warning("Error fetching Ekubo quote: %s", e)
            return QuoteUnavailable(f"Network error: {e}")

        try:
            quote = parser.parse_quote(data, token_in, token_out, exact_in)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed Ekubo quote: %s", e)
            return QuoteUnavailable(f"Malformed quote: {e}")

        logger.info(
            "Ekubo quote: %d split(s), total_calculated=%d (%s)",
            len(quote.splits),
            quote.total_calculated,
            "exact in" if exact_in else "exact out",
        )
        return quote
