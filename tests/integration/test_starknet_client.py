"""Integration tests for Starknet reads and submission with a mocked node."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from starknet_py.hash.selector import get_selector_from_name

from vesu_lever.chains.starknet.client import StarknetPoolClient
from vesu_lever.chains.starknet.submitter import StarknetSubmitter, to_starknet_calls
from vesu_lever.config import AccountConfig, StarknetConfig
from vesu_lever.errors import ChainExecutionError, ConfigError
from vesu_lever.models import Call, CallBatch, TokenValue

from tests.factories import ETH, EXTENSION, MULTIPLY, POOL_ID, SINGLETON, USDC, USER, WAD

ACCOUNT = "vesu_lever.chains.starknet.submitter.Account"


@pytest.fixture()
def node() -> MagicMock:
    node = MagicMock()
    node.call_contract = AsyncMock()
    node.wait_for_tx = AsyncMock()
    return node


@pytest.fixture()
def reader(node: MagicMock) -> StarknetPoolClient:
    return StarknetPoolClient(StarknetConfig(rpc_url="https://rpc.example.com"), client=node)


@pytest.fixture()
def batch() -> CallBatch:
    return CallBatch(
        operation="open_borrow",
        calls=(
            Call(ETH, "approve", (int(POOL_ID, 16), 10, 0)),
            Call(POOL_ID, "modify_position", (1, 2, 3)),
        ),
    )


class TestPoolReads:
    @pytest.mark.asyncio
    async def test_pair_config(self, reader: StarknetPoolClient, node: MagicMock) -> None:
        node.call_contract.return_value = [8 * WAD // 10, 0, 0]

        assert await reader.pair_config(POOL_ID, ETH, USDC) == 8 * WAD // 10

        call = node.call_contract.call_args.kwargs["call"]
        assert call.to_addr == int(POOL_ID, 16)
        assert call.selector == get_selector_from_name("pair_config")
        assert call.calldata == [int(ETH, 16), int(USDC, 16)]
        assert node.call_contract.call_args.kwargs["block_number"] == "latest"

    @pytest.mark.asyncio
    async def test_price_decodes_u256(
        self, reader: StarknetPoolClient, node: MagicMock
    ) -> None:
        node.call_contract.return_value = [5, 1, 1]

        result = await reader.price(POOL_ID, ETH)

        assert result.value == TokenValue(5 + (1 << 128), 18)
        assert result.is_valid is True

    @pytest.mark.asyncio
    async def test_invalid_price_flag(
        self, reader: StarknetPoolClient, node: MagicMock
    ) -> None:
        node.call_contract.return_value = [3000 * WAD, 0, 0]
        assert (await reader.price(POOL_ID, ETH)).is_valid is False

    @pytest.mark.asyncio
    async def test_short_price_result(
        self, reader: StarknetPoolClient, node: MagicMock
    ) -> None:
        node.call_contract.return_value = [1]
        with pytest.raises(ValueError, match="AssetPrice"):
            await reader.price(POOL_ID, ETH)

    @pytest.mark.asyncio
    async def test_singleton_address(
        self, reader: StarknetPoolClient, node: MagicMock
    ) -> None:
        node.call_contract.return_value = [int(SINGLETON, 16)]

        assert await reader.singleton_address(EXTENSION) == SINGLETON
        call = node.call_contract.call_args.kwargs["call"]
        assert call.calldata == []

    @pytest.mark.asyncio
    async def test_ltv_config(self, reader: StarknetPoolClient, node: MagicMock) -> None:
        node.call_contract.return_value = [7 * WAD // 10]

        assert await reader.ltv_config(SINGLETON, POOL_ID, ETH, USDC) == 7 * WAD // 10
        call = node.call_contract.call_args.kwargs["call"]
        assert call.calldata == [int(POOL_ID, 16), int(ETH, 16), int(USDC, 16)]

    @pytest.mark.asyncio
    async def test_read_bounded_by_rpc_timeout(self, node: MagicMock) -> None:
        async def never_answers(**kwargs):
            await asyncio.sleep(60)

        node.call_contract.side_effect = never_answers
        reader = StarknetPoolClient(
            StarknetConfig(rpc_url="https://rpc.example.com", rpc_timeout=0), client=node
        )

        with pytest.raises(asyncio.TimeoutError):
            await reader.pair_config(POOL_ID, ETH, USDC)

    @pytest.mark.asyncio
    async def test_extension_price(
        self, reader: StarknetPoolClient, node: MagicMock
    ) -> None:
        node.call_contract.return_value = [2 * WAD, 0, 1]

        result = await reader.extension_price(EXTENSION, POOL_ID, ETH)

        assert result.value == TokenValue(2 * WAD, 18)
        call = node.call_contract.call_args.kwargs["call"]
        assert call.to_addr == int(EXTENSION, 16)


class TestSubmitter:
    def test_to_starknet_calls(self, batch: CallBatch) -> None:
        calls = to_starknet_calls(batch)
        assert [c.to_addr for c in calls] == [int(ETH, 16), int(POOL_ID, 16)]
        assert calls[0].selector == get_selector_from_name("approve")
        assert calls[1].calldata == [1, 2, 3]

    def test_address_normalized(self, node: MagicMock) -> None:
        submitter = StarknetSubmitter(
            StarknetConfig(rpc_url="x"), AccountConfig(address="0xbeef"), client=node
        )
        assert submitter.address == USER

    @pytest.mark.asyncio
    async def test_submit_executes_and_waits(
        self, node: MagicMock, batch: CallBatch
    ) -> None:
        account = MagicMock()
        account.execute_v3 = AsyncMock(return_value=MagicMock(transaction_hash=0xABC))
        submitter = StarknetSubmitter(
            StarknetConfig(rpc_url="x"),
            AccountConfig(address=USER, private_key="0x1234"),
            client=node,
        )

        with patch(ACCOUNT, return_value=account) as account_cls:
            tx_hash = await submitter.submit(batch)

        assert tx_hash == "0xabc"
        assert account_cls.call_args.kwargs["address"] == USER
        sent = account.execute_v3.call_args.kwargs["calls"]
        assert len(sent) == 2
        assert account.execute_v3.call_args.kwargs["auto_estimate"] is True
        node.wait_for_tx.assert_awaited_once_with(0xABC)

    @pytest.mark.asyncio
    async def test_missing_private_key(self, node: MagicMock, batch: CallBatch) -> None:
        submitter = StarknetSubmitter(
            StarknetConfig(rpc_url="x"), AccountConfig(address=USER), client=node
        )
        with pytest.raises(ConfigError, match="private_key"):
            await submitter.submit(batch)

    @pytest.mark.asyncio
    async def test_rejected_transaction(self, node: MagicMock, batch: CallBatch) -> None:
        account = MagicMock()
        account.execute_v3 = AsyncMock(side_effect=RuntimeError("insufficient fee"))
        submitter = StarknetSubmitter(
            StarknetConfig(rpc_url="x"),
            AccountConfig(address=MULTIPLY, private_key="0x1234"),
            client=node,
        )

        with patch(ACCOUNT, return_value=account):
            with pytest.raises(ChainExecutionError, match="insufficient fee") as exc_info:
                await submitter.submit(batch)

        assert exc_info.value.step == "submit"
        node.wait_for_tx.assert_not_called()
