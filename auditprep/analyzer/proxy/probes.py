"""Proxy implementation probes, from most to least reliable."""

from __future__ import annotations

import logging
import re

from web3 import Web3

from auditprep.analyzer.proxy.base_probe import BaseProbe, ProbeContext
from auditprep.core.addresses import addresses_in_abi_words, to_checksum, to_hex
from auditprep.core.types import ProxyMethod

logger = logging.getLogger(__name__)


# bytes32(uint256(keccak256('eip1967.proxy.implementation')) - 1)
EIP1967_LOGIC_SLOT = "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc"
# bytes32(uint256(keccak256('eip1967.proxy.beacon')) - 1)
EIP1967_BEACON_SLOT = "0xa3f0ad74e5423aebfd80d3ef4346578335a9a72aeaee59ff6cb3582b35133d50"
# keccak256("org.zeppelinos.proxy.implementation")
OPENZEPPELIN_IMPLEMENTATION_SLOT = "0x7050c9e0f4ca769c69bd3a8ef740bc37934f8e2c036e5a723fd8ee048ed3f8c3"
# keccak256("PROXIABLE")
EIP1822_LOGIC_SLOT = "0xc5f16f0fcc639fa48a6947836d9850f504798523bf8c9a3a87d5876cf622bcf7"


def function_selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


IMPLEMENTATION_SELECTOR = function_selector("implementation()")
MASTER_COPY_SELECTOR = function_selector("masterCopy()")
CHILD_IMPLEMENTATION_SELECTOR = function_selector("childImplementation()")


# ── Declared by the explorer ─────────────────────────────────────────────────


class DeclaredImplementationProbe(BaseProbe):
    """Trust the explorer's proxy verification when its address is valid."""

    METHOD = ProxyMethod.ETHERSCAN_API
    NAME = "Explorer-declared implementation"

    async def probe(self, context: ProbeContext) -> str | None:
        record = context.source_record
        if not record or not record.declared_proxy or not record.declared_implementation:
            return None
        implementation = to_checksum(record.declared_implementation)
        if implementation is None:
            logger.warning(
                "Invalid implementation address from explorer: %s",
                record.declared_implementation,
            )
        return implementation


# ── Storage slots ────────────────────────────────────────────────────────────


class StorageSlotProbe(BaseProbe):
    """Read a well-known slot holding the implementation address."""

    SLOT: str = ""

    async def probe(self, context: ProbeContext) -> str | None:
        return await self.read_slot(context, context.address, self.SLOT)


class EIP1967SlotProbe(StorageSlotProbe):
    METHOD = ProxyMethod.EIP1967
    NAME = "EIP-1967 logic slot"
    SLOT = EIP1967_LOGIC_SLOT


class OpenZeppelinSlotProbe(StorageSlotProbe):
    METHOD = ProxyMethod.OPENZEPPELIN_SLOT
    NAME = "Legacy OpenZeppelin implementation slot"
    SLOT = OPENZEPPELIN_IMPLEMENTATION_SLOT


class EIP1822SlotProbe(StorageSlotProbe):
    METHOD = ProxyMethod.EIP1822
    NAME = "EIP-1822 PROXIABLE slot"
    SLOT = EIP1822_LOGIC_SLOT


# ── Bytecode templates ───────────────────────────────────────────────────────


MINIMAL_PROXY_TEMPLATES: tuple[re.Pattern[str], ...] = (
    # EIP-1167 runtime code
    re.compile(r"^363d3d373d3d3d363d73([0-9a-f]{40})5af43d82803e903d91602b57fd5bf3$"),
    # Early clone-factory variant
    re.compile(r"^36600080376020363660203736[0-9a-f]*?73([0-9a-f]{40})[0-9a-f]*$"),
)


def parse_minimal_proxy(bytecode: bytes | str) -> str | None:
    """Implementation address embedded in minimal-proxy runtime code."""
    code = to_hex(bytecode)
    for template in MINIMAL_PROXY_TEMPLATES:
        match = template.match(code)
        if match:
            address = to_checksum("0x" + match.group(1))
            if address:
                return address
    return None


class MinimalProxyBytecodeProbe(BaseProbe):
    METHOD = ProxyMethod.EIP1167_BYTECODE
    NAME = "EIP-1167 minimal proxy bytecode"

    async def probe(self, context: ProbeContext) -> str | None:
        return parse_minimal_proxy(context.bytecode)


# ── Live calls ───────────────────────────────────────────────────────────────


class AccessorCallProbe(BaseProbe):
    """Call a zero-argument getter on the proxy itself."""

    SELECTOR: bytes = b""

    async def probe(self, context: ProbeContext) -> str | None:
        return await self.call_accessor(context, context.address, self.SELECTOR)


class EIP897CallProbe(AccessorCallProbe):
    METHOD = ProxyMethod.EIP897_CALL
    NAME = "EIP-897 implementation()"
    SELECTOR = IMPLEMENTATION_SELECTOR


class GnosisSafeCallProbe(AccessorCallProbe):
    METHOD = ProxyMethod.GNOSIS_SAFE
    NAME = "Gnosis Safe masterCopy()"
    SELECTOR = MASTER_COPY_SELECTOR


class BeaconProbe(BaseProbe):
    """EIP-1967 beacon slot, then ask the beacon for the implementation."""

    METHOD = ProxyMethod.EIP1967_BEACON
    NAME = "EIP-1967 beacon"

    async def probe(self, context: ProbeContext) -> str | None:
        beacon = await self.read_slot(context, context.address, EIP1967_BEACON_SLOT)
        if not beacon:
            return None
        for selector in (IMPLEMENTATION_SELECTOR, CHILD_IMPLEMENTATION_SELECTOR):
            implementation = await self.call_accessor(context, beacon, selector)
            if implementation:
                return implementation
        return None


# ── Source heuristics ────────────────────────────────────────────────────────


_PROXY_INHERITANCE = re.compile(r"contract\s+\w+\s+is\s+[^{]*Proxy", re.IGNORECASE)
_IMPLEMENTATION_OVERRIDE = re.compile(
    r"function\s+_implementation\s*\(\s*\)\s+internal\s+view\s+(?:virtual\s+)?"
    r"override\s+returns\s*\(\s*address\s*\)",
    re.IGNORECASE,
)
_CUSTOM_STORAGE_SLOT = re.compile(
    r"bytes32\s+(?:public\s+|private\s+|internal\s+)?constant\s+\w*STORAGE_?SLOT\w*"
    r"\s*=\s*0x([a-fA-F0-9]{64})",
    re.IGNORECASE,
)


class SourceHeuristicProbe(BaseProbe):
    """Last resort for custom proxies recognisable only from verified source."""

    METHOD = ProxyMethod.SOURCE_ANALYSIS
    NAME = "Source code analysis"

    async def probe(self, context: ProbeContext) -> str | None:
        record = context.source_record
        if not record or not record.verified:
            return None

        source = record.source_text or ""
        inherits_proxy = _PROXY_INHERITANCE.search(source) is not None
        overrides_accessor = _IMPLEMENTATION_OVERRIDE.search(source) is not None
        slot_match = _CUSTOM_STORAGE_SLOT.search(source)

        if not (inherits_proxy or overrides_accessor or slot_match):
            return None

        logger.info("Non-standard proxy pattern detected in source code")

        implementation = await self.call_accessor(context, context.address, IMPLEMENTATION_SELECTOR)
        if implementation:
            return implementation

        if slot_match:
            slot = "0x" + slot_match.group(1)
            logger.info("Trying custom storage slot %s", slot)
            slot_value = await self.read_slot(context, context.address, slot)
            if slot_value and await self.has_code(context, slot_value):
                implementation = await self.call_accessor(context, slot_value, IMPLEMENTATION_SELECTOR)
                if implementation:
                    return implementation
                return slot_value

        for candidate in addresses_in_abi_words(record.constructor_args):
            if not await self.has_code(context, candidate):
                continue
            implementation = await self.call_accessor(context, candidate, IMPLEMENTATION_SELECTOR)
            if implementation:
                logger.info("Implementation found through constructor argument %s", candidate)
                return implementation

        return None


def default_probes() -> list[BaseProbe]:
    """All probes in resolution priority order."""
    return [
        DeclaredImplementationProbe(),
        EIP1967SlotProbe(),
        OpenZeppelinSlotProbe(),
        EIP1822SlotProbe(),
        MinimalProxyBytecodeProbe(),
        EIP897CallProbe(),
        GnosisSafeCallProbe(),
        BeaconProbe(),
        SourceHeuristicProbe(),
    ]
