"""Find the logic contract behind a proxy address."""

from __future__ import annotations

import logging

from auditprep.analyzer.proxy.base_probe import BaseProbe, ChainReader, ProbeContext
from auditprep.analyzer.proxy.probes import default_probes
from auditprep.core.addresses import is_empty_code
from auditprep.core.errors import NoContractError
from auditprep.core.types import ProxyMethod, ProxyResolution, SourceRecord

logger = logging.getLogger(__name__)


class ProxyResolver:
    """Runs the probe chain in order and stops at the first answer.

    Priority follows reliability: explorer-declared implementation, then
    standard storage slots, minimal-proxy bytecode, live getter calls, the
    beacon slot and finally source-text heuristics.
    """

    def __init__(self, provider: ChainReader, probes: list[BaseProbe] | None = None) -> None:
        self.provider = provider
        self.probes = probes if probes is not None else default_probes()

    async def resolve(
        self,
        address: str,
        bytecode: bytes | str,
        source_record: SourceRecord | None = None,
    ) -> ProxyResolution:
        """Resolve ``address`` given its deployed bytecode.

        "Not a proxy" is a normal result. Raises NoContractError only when
        ``bytecode`` is empty.
        """
        if is_empty_code(bytecode):
            raise NoContractError(address)

        context = ProbeContext(
            address=address,
            bytecode=bytecode,
            provider=self.provider,
            source_record=source_record,
        )

        for probe in self.probes:
            try:
                implementation = await probe.probe(context)
            except Exception as exc:
                logger.debug("Probe %s failed for %s: %s", probe.NAME, address, exc)
                continue
            if implementation:
                logger.info(
                    "Proxy %s resolved to %s via %s",
                    address,
                    implementation,
                    probe.NAME,
                    extra={"detection_method": probe.METHOD.value},
                )
                return ProxyResolution(
                    is_proxy=True,
                    proxy_address=address,
                    implementation_address=implementation,
                    method=probe.METHOD,
                )

        return ProxyResolution(is_proxy=False, proxy_address=address, method=ProxyMethod.NONE)

    async def detect(
        self,
        address: str,
        source_record: SourceRecord | None = None,
    ) -> ProxyResolution:
        """Fetch bytecode and resolve; an empty account becomes an annotated result.

        Provider failures while fetching the target's own bytecode propagate.
        """
        bytecode = await self.provider.get_code(address)
        try:
            return await self.resolve(address, bytecode, source_record)
        except NoContractError:
            logger.warning("No contract at address %s", address)
            return ProxyResolution(
                is_proxy=False,
                proxy_address=address,
                method=ProxyMethod.NONE,
                error="No contract at address",
            )
