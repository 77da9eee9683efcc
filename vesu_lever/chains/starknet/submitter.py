"""Transaction submitter — signs a CallBatch with a Starknet account."""
from __future__ import annotations

import logging

from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.account.account import Account
from starknet_py.net.client_models import Call as StarknetCall
from starknet_py.net.full_node_client import FullNodeClient
from starknet_py.net.models import StarknetChainId
from starknet_py.net.signer.key_pair import KeyPair

from ...config import AccountConfig, StarknetConfig
from ...errors import ChainExecutionError, ConfigError
from ...models import CallBatch
from .address import normalize_address, to_int

logger = logging.getLogger(__name__)

_CHAIN_IDS = {
    "mainnet": StarknetChainId.MAINNET,
    "sepolia": StarknetChainId.SEPOLIA,
}


def to_starknet_calls(batch: CallBatch) -> list[StarknetCall]:
    return [
        StarknetCall(
            to_addr=to_int(call.target),
            selector=get_selector_from_name(call.entrypoint),
            calldata=list(call.calldata),
        )
        for call in batch.calls
    ]


class StarknetSubmitter:
    """Execute a batch as a single v3 invoke and wait for acceptance."""

    def __init__(
        self,
        config: StarknetConfig,
        account: AccountConfig,
        client: FullNodeClient | None = None,
    ) -> None:
        self._client = client or FullNodeClient(node_url=config.rpc_url)
        self._address = normalize_address(account.address)
        self._private_key = account.private_key
        self._chain = config.chain
        self._account: Account | None = None

    @property
    def address(self) -> str:
        return self._address

    def _get_account(self) -> Account:
        if self._account is None:
            if not self._private_key:
                raise ConfigError("account.private_key is required to submit transactions")
            self._account = Account(
                client=self._client,
                address=self._address,
                key_pair=KeyPair.from_private_key(to_int(self._private_key)),
                chain=_CHAIN_IDS[self._chain],
            )
        return self._account

    async def submit(self, batch: CallBatch) -> str:
        """Submit every call of ``batch`` atomically; return the tx hash."""
        account = self._get_account()
        calls = to_starknet_calls(batch)
        logger.info(
            "Submitting %s: %s", batch.operation, " -> ".join(batch.entrypoints)
        )
        try:
            response = await account.execute_v3(calls=calls, auto_estimate=True)
            tx_hash = response.transaction_hash
            await self._client.wait_for_tx(tx_hash)
        except Exception as e:
            logger.error("Transaction for %s failed: %s", batch.operation, e)
            raise ChainExecutionError(f"Transaction failed: {e}") from e

        tx_hex = hex(tx_hash)
        logger.info("Transaction %s accepted", tx_hex)
        return tx_hex
