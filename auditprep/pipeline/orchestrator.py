"""Fetch orchestrator — coordinates proxy resolution, source triage and output."""

from __future__ import annotations

import logging

import httpx

from auditprep.analyzer.proxy.resolver import ProxyResolver
from auditprep.analyzer.triage.classifier import AuditClassifier
from auditprep.core.addresses import is_address_format
from auditprep.core.chains import ChainConfig, get_chain_config, get_supported_chains
from auditprep.core.config import Settings, TriageConfig, get_settings
from auditprep.core.errors import (
    AuditPrepError,
    InvalidAddressError,
    UnsupportedChainError,
    UnverifiedSourceError,
)
from auditprep.core.logging import contract_log_context
from auditprep.core.types import (
    ContractResult,
    ContractType,
    FetchResult,
    SaveResult,
    SourceRecord,
)
from auditprep.ingestion.chain_provider import ChainProvider
from auditprep.ingestion.contract_fetcher import ContractFetcher
from auditprep.ingestion.source_parser import parse_source_code, rename_single_file
from auditprep.output.writer import OutputWriter

logger = logging.getLogger(__name__)

UNVERIFIED_MESSAGE = "Contract source code is not verified on block explorer"


class FetchOrchestrator:
    """Runs the full fetch-and-triage flow for one target address.

    Flow:
    1. Validate chain and address
    2. Fetch the target's verified source (enables source-based proxy detection)
    3. Resolve proxy -> implementation
    4. For the proxy and implementation (or the plain contract): fetch source,
       parse, classify, write
    """

    def __init__(
        self,
        settings: Settings | None = None,
        triage_config: TriageConfig | None = None,
        fetcher: ContractFetcher | None = None,
        provider_factory=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = triage_config or TriageConfig.from_settings(self._settings)
        self._fetcher = fetcher or ContractFetcher(self._settings)
        self._provider_factory = provider_factory or self._default_provider
        self._classifier = AuditClassifier(self._config)
        self._writer = OutputWriter(self._config)

    def _default_provider(self, chain_config: ChainConfig) -> ChainProvider:
        return ChainProvider(chain_config, timeout=self._settings.rpc_timeout_seconds)

    async def fetch_contract(self, chain: str, address: str) -> FetchResult:
        chain_config = get_chain_config(chain)
        if not chain_config:
            raise UnsupportedChainError(chain, get_supported_chains())
        if not is_address_format(address):
            raise InvalidAddressError(address)

        with contract_log_context(chain_config.key, address):
            return await self._run(chain_config, address)

    async def _run(self, chain_config: ChainConfig, address: str) -> FetchResult:
        chain = chain_config.key
        logger.info("Fetching %s on %s (chain id %d)", address, chain_config.name, chain_config.chain_id)
        result = FetchResult(chain=chain, contract_address=address)

        main_record: SourceRecord | None = None
        try:
            main_record = await self._fetcher.fetch_contract_source(chain, address)
            if main_record.verified:
                logger.info("Contract verified: %s", main_record.contract_name)
            else:
                logger.info("Contract not verified")
        except (AuditPrepError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not fetch source: %s", exc)

        provider = self._provider_factory(chain_config)
        try:
            proxy_info = await ProxyResolver(provider).detect(address, main_record)
        finally:
            await provider.close()
        result.proxy_info = proxy_info

        if proxy_info.is_proxy and proxy_info.implementation_address:
            logger.info(
                "Contract IS a proxy, implementation %s (%s)",
                proxy_info.implementation_address,
                proxy_info.method.value,
            )
            targets = [
                (address, ContractType.PROXY, main_record),
                (proxy_info.implementation_address, ContractType.IMPLEMENTATION, None),
            ]
        else:
            targets = [(address, ContractType.MAIN, main_record)]

        for target_address, contract_type, record in targets:
            result.source_results.append(
                await self._process_target(chain, address, target_address, contract_type, record)
            )

        for item in result.source_results:
            if item.save:
                manifest = item.save.audit_manifest
                logger.info(
                    "Audit manifest %s: %s (%s)",
                    item.contract_type.value,
                    manifest.main_contract,
                    manifest.main_contract_path,
                )
        return result

    async def _process_target(
        self,
        chain: str,
        base_address: str,
        address: str,
        contract_type: ContractType,
        record: SourceRecord | None,
    ) -> ContractResult:
        logger.info("Processing %s (%s)", contract_type.value, address)
        try:
            if record is None:
                record = await self._fetcher.fetch_contract_source(chain, address)
            if not record.verified:
                raise UnverifiedSourceError(address, chain)
            save = self.process_source(record, contract_type, chain, base_address)
        except UnverifiedSourceError as exc:
            logger.warning("%s - skipping (only verified contracts are supported)", exc.message)
            return ContractResult(
                address=address,
                contract_type=contract_type,
                verified=False,
                success=False,
                error=UNVERIFIED_MESSAGE,
                error_code=exc.code.value,
            )
        except AuditPrepError as exc:
            logger.error("Error processing %s: %s", address, exc.message)
            return ContractResult(
                address=address,
                contract_type=contract_type,
                error=exc.message,
                error_code=exc.code.value,
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error processing %s: %s", address, exc)
            return ContractResult(address=address, contract_type=contract_type, error=str(exc))

        logger.info("Source saved to %s (%d files kept)", save.output_dir, len(save.kept_files))
        return ContractResult(
            address=address,
            contract_type=contract_type,
            verified=True,
            success=True,
            contract_name=record.contract_name,
            save=save,
        )

    def process_source(
        self,
        record: SourceRecord,
        contract_type: ContractType,
        chain: str,
        base_address: str,
    ) -> SaveResult:
        """Parse, classify and persist one verified source record."""
        tree = parse_source_code(record.source_text)
        tree = rename_single_file(tree, record.contract_name, "vy" if record.is_vyper else "sol")
        classification = self._classifier.classify(
            tree,
            contract_name=record.contract_name or None,
            contract_file_name=record.contract_file_name or None,
        )
        return self._writer.save_source_files(
            chain,
            base_address,
            tree,
            classification,
            contract_type=contract_type,
            contract_name=record.contract_name,
        )

    async def close(self) -> None:
        await self._fetcher.close()
