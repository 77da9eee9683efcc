"""Unit tests for Cairo calldata serialization."""
from __future__ import annotations

import pytest

from vesu_lever.lever.calldata import (
    AMOUNT_DENOMINATION_ASSETS,
    AMOUNT_DENOMINATION_NATIVE,
    AMOUNT_TYPE_DELTA,
    AMOUNT_TYPE_TARGET,
    LEVER_ACTION_DECREASE,
    LEVER_ACTION_INCREASE,
    encode_approve,
    encode_array,
    encode_bool,
    encode_decrease_lever,
    encode_i129,
    encode_i257,
    encode_increase_lever,
    encode_modify_delegation,
    encode_modify_position_v1,
    encode_modify_position_v2,
    encode_swap,
    encode_u128,
    encode_u256,
)
from vesu_lever.models import SwapLeg

from tests.factories import ETH, MULTIPLY, POOL_ID, USDC, USER, make_quote


def _int(address: str) -> int:
    return int(address, 16)


class TestPrimitives:
    def test_u256_splits_limbs(self) -> None:
        assert encode_u256(2**128 + 7) == [7, 1]
        assert encode_u256(5) == [5, 0]

    def test_u256_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            encode_u256(-1)
        with pytest.raises(ValueError):
            encode_u256(2**256)

    def test_u128_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            encode_u128(2**128)

    def test_signed_amounts(self) -> None:
        assert encode_i257(-10) == [10, 0, 1]
        assert encode_i257(10) == [10, 0, 0]
        assert encode_i129(-3) == [3, 1]

    def test_bool(self) -> None:
        assert encode_bool(True) == [1]
        assert encode_bool(False) == [0]

    def test_array_prefixes_length(self) -> None:
        assert encode_array([1, 2, 3], encode_u128) == [3, 1, 2, 3]
        assert encode_array([], encode_u128) == [0]


class TestSwap:
    def test_swap_layout(self) -> None:
        quote = make_quote()
        leg = SwapLeg(route=quote.splits[0].route, token=ETH, amount=500, exact_out=True)
        data = encode_swap(leg)
        hop = quote.splits[0].route[0]
        assert data == [
            1,
            _int(hop.pool_key.token0),
            _int(hop.pool_key.token1),
            hop.pool_key.fee,
            hop.pool_key.tick_spacing,
            0,
            5,
            1,
            0,
            _int(ETH),
            500,
            1,
        ]


class TestLever:
    def test_increase_without_swap(self) -> None:
        data = encode_increase_lever(
            pool=POOL_ID,
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            add_margin=10**18,
            lever_swap=(),
            lever_swap_limit_amount=0,
        )
        assert data == [
            LEVER_ACTION_INCREASE,
            _int(POOL_ID),
            _int(ETH),
            _int(USDC),
            _int(USER),
            10**18,
            0,
            0,
            0,
            0,
        ]

    def test_increase_with_legs(self) -> None:
        quote = make_quote()
        legs = [SwapLeg(s.route, ETH, 1, True) for s in quote.splits]
        data = encode_increase_lever(
            pool=POOL_ID,
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            add_margin=1,
            lever_swap=legs,
            lever_swap_limit_amount=1005,
        )
        # header(5) + margin + empty margin swap + limit + lever array(1 + 2 * 12) + limit
        assert len(data) == 5 + 1 + 1 + 1 + 1 + 2 * 12 + 1
        assert data[8] == 2
        assert data[-1] == 1005

    def test_decrease_close(self) -> None:
        data = encode_decrease_lever(
            pool=POOL_ID,
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            sub_margin=0,
            recipient=USER,
            lever_swap=(),
            lever_swap_limit_amount=99,
            lever_swap_weights=(6 * 10**17, 4 * 10**17),
            close_position=True,
        )
        assert data == [
            LEVER_ACTION_DECREASE,
            _int(POOL_ID),
            _int(ETH),
            _int(USDC),
            _int(USER),
            0,
            _int(USER),
            0,
            99,
            2,
            6 * 10**17,
            4 * 10**17,
            0,
            0,
            0,
            1,
        ]


class TestModifyPosition:
    def test_v2_layout(self) -> None:
        data = encode_modify_position_v2(
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            collateral=10**18,
            debt=-500,
        )
        assert data == [
            _int(ETH),
            _int(USDC),
            _int(USER),
            AMOUNT_DENOMINATION_ASSETS, 10**18, 0, 0,
            AMOUNT_DENOMINATION_ASSETS, 500, 0, 1,
        ]

    def test_v2_native_denomination(self) -> None:
        data = encode_modify_position_v2(
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            collateral=-1,
            debt=-2,
            denomination=AMOUNT_DENOMINATION_NATIVE,
        )
        assert data[3] == AMOUNT_DENOMINATION_NATIVE
        assert data[7] == AMOUNT_DENOMINATION_NATIVE

    def test_v1_layout(self) -> None:
        data = encode_modify_position_v1(
            pool_id=POOL_ID,
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            collateral=0,
            debt=-500,
        )
        assert data == [
            _int(POOL_ID),
            _int(ETH),
            _int(USDC),
            _int(USER),
            AMOUNT_TYPE_DELTA, AMOUNT_DENOMINATION_ASSETS, 0, 0, 0,
            AMOUNT_TYPE_DELTA, AMOUNT_DENOMINATION_ASSETS, 500, 0, 1,
            0,
        ]

    def test_v1_target_debt(self) -> None:
        data = encode_modify_position_v1(
            pool_id=POOL_ID,
            collateral_asset=ETH,
            debt_asset=USDC,
            user=USER,
            collateral=0,
            debt=0,
            debt_amount_type=AMOUNT_TYPE_TARGET,
        )
        assert data[4:9] == [AMOUNT_TYPE_DELTA, AMOUNT_DENOMINATION_ASSETS, 0, 0, 0]
        assert data[9:14] == [AMOUNT_TYPE_TARGET, AMOUNT_DENOMINATION_ASSETS, 0, 0, 0]


class TestCalls:
    def test_approve(self) -> None:
        assert encode_approve(MULTIPLY, 2**128) == [_int(MULTIPLY), 0, 1]

    def test_modify_delegation(self) -> None:
        assert encode_modify_delegation(MULTIPLY, True) == [_int(MULTIPLY), 1]
        assert encode_modify_delegation(MULTIPLY, False) == [_int(MULTIPLY), 0]
