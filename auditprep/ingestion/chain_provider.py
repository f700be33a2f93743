"""Read-only JSON-RPC access to an EVM chain."""

from __future__ import annotations

from typing import Any

from web3 import AsyncWeb3, Web3

from auditprep.core.addresses import is_empty_code
from auditprep.core.chains import ChainConfig
from auditprep.core.config import get_settings
from auditprep.core.errors import NoContractError


class ChainProvider:
    """Bytecode, storage-slot and eth_call access for one chain.

    All failures propagate; callers decide whether a failure means
    "no data" or a hard error.
    """

    def __init__(
        self,
        chain_config: ChainConfig,
        timeout: float | None = None,
        w3: Any = None,
    ) -> None:
        self.chain_config = chain_config
        if w3 is None:
            timeout = timeout if timeout is not None else get_settings().rpc_timeout_seconds
            w3 = AsyncWeb3(
                AsyncWeb3.AsyncHTTPProvider(
                    chain_config.resolve_rpc_url(),
                    request_kwargs={"timeout": timeout},
                )
            )
        self._w3 = w3

    async def get_code(self, address: str) -> bytes:
        code = await self._w3.eth.get_code(Web3.to_checksum_address(address))
        return bytes(code)

    async def get_bytecode(self, address: str) -> bytes:
        """Deployed bytecode; raises NoContractError for an empty account."""
        code = await self.get_code(address)
        if is_empty_code(code):
            raise NoContractError(address)
        return code

    async def get_storage_at(self, address: str, slot: str) -> bytes:
        value = await self._w3.eth.get_storage_at(
            Web3.to_checksum_address(address),
            int(slot, 16),
        )
        return bytes(value)

    async def call(self, address: str, selector: bytes) -> bytes:
        """eth_call a zero-argument function by its 4-byte selector."""
        result = await self._w3.eth.call(
            {
                "to": Web3.to_checksum_address(address),
                "data": Web3.to_hex(selector),
            }
        )
        return bytes(result)

    async def close(self) -> None:
        """Release the provider's HTTP session."""
        await self._w3.provider.disconnect()
