"""Tests for the end-to-end fetch pipeline."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from auditprep.analyzer.proxy.probes import EIP1967_LOGIC_SLOT
from auditprep.core.config import Settings
from auditprep.core.errors import (
    ErrorCode,
    InvalidAddressError,
    SourceRegistryError,
    UnsupportedChainError,
)
from auditprep.core.types import ContractType, ProxyMethod, SourceRecord
from auditprep.output.writer import MANIFEST_FILE_NAME
from auditprep.pipeline.orchestrator import UNVERIFIED_MESSAGE, FetchOrchestrator

from auditprep.tests.conftest import (
    IMPLEMENTATION_ADDRESS,
    PROXY_ADDRESS,
    RUNTIME_CODE,
    FakeChainProvider,
    word,
)

PROXY_SOURCE = "contract VaultProxy is ERC1967Proxy {}"
IMPLEMENTATION_SOURCE = "// vault logic\ncontract Vault {\n    function deposit() external {}\n}\n"


def _fetcher(records: dict[str, SourceRecord | Exception]) -> MagicMock:
    fetcher = MagicMock()

    async def fetch(chain: str, address: str) -> SourceRecord:
        outcome = records[address]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    fetcher.fetch_contract_source = AsyncMock(side_effect=fetch)
    fetcher.close = AsyncMock()
    return fetcher


def _orchestrator(triage_config, fetcher, provider) -> FetchOrchestrator:
    return FetchOrchestrator(
        settings=Settings(),
        triage_config=triage_config,
        fetcher=fetcher,
        provider_factory=lambda chain_config: provider,
    )


@pytest.fixture
def proxy_provider() -> FakeChainProvider:
    return FakeChainProvider(
        code={PROXY_ADDRESS: RUNTIME_CODE, IMPLEMENTATION_ADDRESS: RUNTIME_CODE},
        storage={(PROXY_ADDRESS, EIP1967_LOGIC_SLOT): word(IMPLEMENTATION_ADDRESS)},
    )


class TestFetchContract:
    @pytest.mark.asyncio
    async def test_proxy_and_implementation_saved(self, triage_config, proxy_provider):
        fetcher = _fetcher(
            {
                PROXY_ADDRESS: SourceRecord(
                    address=PROXY_ADDRESS, verified=True, contract_name="VaultProxy", source_text=PROXY_SOURCE
                ),
                IMPLEMENTATION_ADDRESS: SourceRecord(
                    address=IMPLEMENTATION_ADDRESS,
                    verified=True,
                    contract_name="Vault",
                    source_text=IMPLEMENTATION_SOURCE,
                ),
            }
        )
        result = await _orchestrator(triage_config, fetcher, proxy_provider).fetch_contract(
            "ethereum", PROXY_ADDRESS
        )

        assert result.proxy_info.method is ProxyMethod.EIP1967
        assert [r.contract_type for r in result.source_results] == [
            ContractType.PROXY,
            ContractType.IMPLEMENTATION,
        ]
        assert result.succeeded

        base = triage_config.output_dir / "ethereum" / PROXY_ADDRESS
        impl_file = base / "implementation" / "Vault.sol"
        assert impl_file.read_text(encoding="utf-8").startswith("contract Vault {")
        assert (base / "proxy" / "VaultProxy.sol").is_file()
        manifest = json.loads((base / "implementation" / MANIFEST_FILE_NAME).read_text(encoding="utf-8"))
        assert manifest == {
            "mainContract": "Vault.sol",
            "mainContractPath": "Vault.sol",
            "contractType": "implementation",
        }
        # the target's source is fetched once and reused for the proxy pass
        assert fetcher.fetch_contract_source.await_count == 2

    @pytest.mark.asyncio
    async def test_plain_contract_is_main(self, triage_config):
        provider = FakeChainProvider(code={PROXY_ADDRESS: RUNTIME_CODE})
        fetcher = _fetcher(
            {
                PROXY_ADDRESS: SourceRecord(
                    address=PROXY_ADDRESS, verified=True, contract_name="Vault", source_text=IMPLEMENTATION_SOURCE
                )
            }
        )
        result = await _orchestrator(triage_config, fetcher, provider).fetch_contract("ethereum", PROXY_ADDRESS)

        assert not result.proxy_info.is_proxy
        assert [r.contract_type for r in result.source_results] == [ContractType.MAIN]
        assert provider.closed
        assert (triage_config.output_dir / "ethereum" / PROXY_ADDRESS / "Vault.sol").is_file()

    @pytest.mark.asyncio
    async def test_unverified_implementation_reported(self, triage_config, proxy_provider):
        fetcher = _fetcher(
            {
                PROXY_ADDRESS: SourceRecord(
                    address=PROXY_ADDRESS, verified=True, contract_name="VaultProxy", source_text=PROXY_SOURCE
                ),
                IMPLEMENTATION_ADDRESS: SourceRecord(address=IMPLEMENTATION_ADDRESS, verified=False),
            }
        )
        result = await _orchestrator(triage_config, fetcher, proxy_provider).fetch_contract(
            "ethereum", PROXY_ADDRESS
        )

        proxy, implementation = result.source_results
        assert proxy.success
        assert not implementation.success
        assert implementation.error == UNVERIFIED_MESSAGE
        assert implementation.error_code == ErrorCode.UNVERIFIED_SOURCE.value
        assert result.succeeded

    @pytest.mark.asyncio
    async def test_registry_failure_still_resolves_proxy(self, triage_config, proxy_provider):
        fetcher = _fetcher(
            {
                PROXY_ADDRESS: SourceRegistryError("rate limited"),
                IMPLEMENTATION_ADDRESS: SourceRecord(
                    address=IMPLEMENTATION_ADDRESS,
                    verified=True,
                    contract_name="Vault",
                    source_text=IMPLEMENTATION_SOURCE,
                ),
            }
        )
        result = await _orchestrator(triage_config, fetcher, proxy_provider).fetch_contract(
            "ethereum", PROXY_ADDRESS
        )

        proxy, implementation = result.source_results
        assert result.proxy_info.is_proxy
        assert proxy.error_code == ErrorCode.REGISTRY_ERROR.value
        assert implementation.success

    @pytest.mark.asyncio
    async def test_nothing_succeeded(self, triage_config):
        provider = FakeChainProvider(code={PROXY_ADDRESS: RUNTIME_CODE})
        fetcher = _fetcher({PROXY_ADDRESS: SourceRecord(address=PROXY_ADDRESS, verified=False)})
        result = await _orchestrator(triage_config, fetcher, provider).fetch_contract("ethereum", PROXY_ADDRESS)
        assert not result.succeeded


class TestValidation:
    @pytest.mark.asyncio
    async def test_unsupported_chain(self, triage_config):
        fetcher = _fetcher({})
        with pytest.raises(UnsupportedChainError):
            await _orchestrator(triage_config, fetcher, FakeChainProvider()).fetch_contract("solana", PROXY_ADDRESS)
        fetcher.fetch_contract_source.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_address(self, triage_config):
        fetcher = _fetcher({})
        with pytest.raises(InvalidAddressError):
            await _orchestrator(triage_config, fetcher, FakeChainProvider()).fetch_contract("ethereum", "0xabc")

    @pytest.mark.asyncio
    async def test_close_closes_fetcher(self, triage_config):
        fetcher = _fetcher({})
        await _orchestrator(triage_config, fetcher, FakeChainProvider()).close()
        fetcher.close.assert_awaited_once()
