"""Fetch verified smart contract source code from block explorers."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from auditprep.core.addresses import is_address_format
from auditprep.core.chains import get_chain_config, get_supported_chains
from auditprep.core.config import Settings, get_settings
from auditprep.core.errors import (
    InvalidAddressError,
    SourceRegistryError,
    UnsupportedChainError,
)
from auditprep.core.types import SourceRecord

logger = logging.getLogger(__name__)


class ContractFetcher:
    """Fetch verified contract source code from the Etherscan multichain API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(timeout=self.settings.explorer_timeout_seconds)

    async def fetch_contract_source(self, chain: str, address: str) -> SourceRecord:
        """Fetch verified source code for a contract from its block explorer.

        Args:
            chain: Chain identifier (e.g., 'ethereum', 'bsc')
            address: Contract address (0x...)

        Returns:
            SourceRecord; ``verified`` is False when the explorer holds no source.

        Raises:
            UnsupportedChainError: chain is not configured
            InvalidAddressError: address is not 0x + 40 hex characters
            SourceRegistryError: explorer answered with an error status
        """
        if not is_address_format(address):
            raise InvalidAddressError(address)

        chain_config = get_chain_config(chain)
        if not chain_config:
            raise UnsupportedChainError(chain, get_supported_chains())

        params: dict[str, Any] = {
            "chainid": chain_config.chain_id,
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
        }
        if self.settings.etherscan_api_key:
            params["apikey"] = self.settings.etherscan_api_key

        response = await self._client.get(self.settings.etherscan_api_url, params=params)
        response.raise_for_status()
        data = response.json()

        if data.get("status") != "1" or not data.get("result"):
            message = data.get("result") or data.get("message") or "Unknown error"
            raise SourceRegistryError(
                f"Etherscan API error for {address} on {chain_config.key}: {message}",
                {"address": address, "chain": chain_config.key},
            )

        result = data["result"][0]
        return self._to_record(result, address, chain_config.key)

    @staticmethod
    def _to_record(result: dict[str, Any], address: str, chain: str) -> SourceRecord:
        source_text = result.get("SourceCode") or ""
        try:
            runs = int(result.get("Runs") or 200)
        except (TypeError, ValueError):
            runs = 200

        return SourceRecord(
            address=address,
            chain=chain,
            verified=bool(source_text),
            contract_name=result.get("ContractName") or "",
            contract_file_name=result.get("ContractFileName") or "",
            source_text=source_text,
            declared_proxy=str(result.get("Proxy", "0")) == "1",
            declared_implementation=result.get("Implementation") or None,
            constructor_args=result.get("ConstructorArguments") or "",
            compiler_version=result.get("CompilerVersion") or "",
            compiler_type=result.get("CompilerType") or "",
            optimization_used=str(result.get("OptimizationUsed", "0")) == "1",
            runs=runs,
            evm_version=result.get("EVMVersion") or "",
            abi=result.get("ABI") or "",
            license_type=result.get("LicenseType") or "",
        )

    async def is_contract_verified(self, chain: str, address: str) -> bool:
        """Check verification status; any failure counts as unverified."""
        try:
            record = await self.fetch_contract_source(chain, address)
        except (httpx.HTTPError, ValueError, SourceRegistryError, InvalidAddressError) as exc:
            logger.error("Error checking verification status of %s: %s", address, exc)
            return False
        return record.verified

    async def fetch_multiple_contract_sources(
        self,
        chain: str,
        addresses: list[str],
    ) -> list[SourceRecord]:
        """Fetch several addresses in sequence; failures become unverified records."""
        records: list[SourceRecord] = []
        for address in addresses:
            try:
                records.append(await self.fetch_contract_source(chain, address))
            except UnsupportedChainError:
                raise
            except (httpx.HTTPError, ValueError, SourceRegistryError, InvalidAddressError) as exc:
                records.append(
                    SourceRecord(address=address, chain=chain, verified=False, error=str(exc))
                )
        return records

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
