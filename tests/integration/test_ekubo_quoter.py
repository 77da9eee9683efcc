"""Integration tests for the Ekubo quoter: URL shape, parsing and failure modes."""
from __future__ import annotations

from typing import Any
from unittest.mock import patch

import aiohttp
import pytest

from vesu_lever.config import EkuboConfig
from vesu_lever.models import QuoteUnavailable, SwapQuote
from vesu_lever.swaps.ekubo.quoter import EkuboQuoter

from tests.factories import ETH, USDC
from tests.integration.http_mocks import mock_session

BASE = "https://quoter.example.com/quote"
SESSION = "vesu_lever.swaps.ekubo.quoter.aiohttp.ClientSession"
CONNECTOR = "vesu_lever.swaps.ekubo.quoter.aiohttp.TCPConnector"


@pytest.fixture()
def quoter() -> EkuboQuoter:
    return EkuboQuoter(EkuboConfig(quoter_url=BASE + "/", http_timeout=5))


class TestQuoteUrl:
    def test_exact_in(self, quoter: EkuboQuoter) -> None:
        assert quoter.quote_url(USDC, ETH, 1000, exact_in=True) == f"{BASE}/1000/{USDC}/{ETH}"

    def test_exact_out_negates_and_swaps(self, quoter: EkuboQuoter) -> None:
        assert quoter.quote_url(USDC, ETH, 1000, exact_in=False) == f"{BASE}/-1000/{ETH}/{USDC}"


class TestRequestQuote:
    @pytest.mark.asyncio
    async def test_successful_quote(
        self, quoter: EkuboQuoter, quote_payload: dict[str, Any]
    ) -> None:
        session = mock_session(quote_payload)

        with patch(SESSION, return_value=session):
            with patch(CONNECTOR):
                quote = await quoter.request_quote(USDC, ETH, 10**18, exact_in=False)

        assert isinstance(quote, SwapQuote)
        assert quote.total_calculated == 1000
        assert len(quote.splits) == 2
        session.get.assert_called_once_with(f"{BASE}/-{10**18}/{ETH}/{USDC}")

    @pytest.mark.asyncio
    async def test_http_error(self, quoter: EkuboQuoter) -> None:
        with patch(SESSION, return_value=mock_session({}, status=503)):
            with patch(CONNECTOR):
                result = await quoter.request_quote(USDC, ETH, 100, exact_in=True)

        assert isinstance(result, QuoteUnavailable)
        assert "503" in result.reason

    @pytest.mark.asyncio
    async def test_network_error(self, quoter: EkuboQuoter) -> None:
        session = mock_session(error=aiohttp.ClientError("connection reset"))
        with patch(SESSION, return_value=session):
            with patch(CONNECTOR):
                result = await quoter.request_quote(USDC, ETH, 100, exact_in=True)

        assert isinstance(result, QuoteUnavailable)
        assert "connection reset" in result.reason

    @pytest.mark.asyncio
    async def test_malformed_payload(self, quoter: EkuboQuoter) -> None:
        with patch(SESSION, return_value=mock_session({"splits": []})):
            with patch(CONNECTOR):
                result = await quoter.request_quote(USDC, ETH, 100, exact_in=True)

        assert isinstance(result, QuoteUnavailable)
        assert result.reason.startswith("Malformed quote")

    @pytest.mark.asyncio
    async def test_non_positive_amount_skips_request(self, quoter: EkuboQuoter) -> None:
        with patch(SESSION) as session_cls:
            result = await quoter.request_quote(USDC, ETH, 0, exact_in=True)

        assert isinstance(result, QuoteUnavailable)
        session_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_bad_address(self, quoter: EkuboQuoter) -> None:
        result = await quoter.request_quote("not-an-address", ETH, 100, exact_in=True)
        assert isinstance(result, QuoteUnavailable)
