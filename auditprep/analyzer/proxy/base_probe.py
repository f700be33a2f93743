"""Probe base class and the context shared by proxy detection strategies."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Protocol

from auditprep.core.addresses import (
    address_from_return_data,
    address_from_word,
    is_empty_code,
)
from auditprep.core.types import ProxyMethod, SourceRecord

logger = logging.getLogger(__name__)


class ChainReader(Protocol):
    """The slice of ChainProvider the probes rely on."""

    async def get_code(self, address: str) -> bytes: ...

    async def get_storage_at(self, address: str, slot: str) -> bytes: ...

    async def call(self, address: str, selector: bytes) -> bytes: ...


@dataclass
class ProbeContext:
    """Everything a probe may look at for one resolution call."""

    address: str
    bytecode: bytes | str
    provider: ChainReader
    source_record: SourceRecord | None = None


class BaseProbe(abc.ABC):
    """Abstract base class for proxy implementation probes.

    A probe answers with a checksummed implementation address or None.
    Raising is allowed; the resolver treats any exception as "no answer".

    Probe metadata:
        - METHOD: tag recorded on the ProxyResolution when this probe wins
        - NAME: human-readable probe name for logs
    """

    METHOD: ProxyMethod = ProxyMethod.NONE
    NAME: str = ""

    @abc.abstractmethod
    async def probe(self, context: ProbeContext) -> str | None:
        """Return the implementation address, or None when not applicable."""
        ...

    # ── Helpers shared by concrete probes ────────────────────────────────

    @staticmethod
    async def read_slot(context: ProbeContext, address: str, slot: str) -> str | None:
        """Read one storage slot as an address; failures mean no answer."""
        try:
            value = await context.provider.get_storage_at(address, slot)
        except Exception as exc:
            logger.debug("Storage read %s@%s failed: %s", slot, address, exc)
            return None
        return address_from_word(value)

    @staticmethod
    async def call_accessor(context: ProbeContext, address: str, selector: bytes) -> str | None:
        """Call a zero-argument address getter; reverts mean no answer."""
        try:
            data = await context.provider.call(address, selector)
        except Exception as exc:
            logger.debug("Call 0x%s on %s failed: %s", selector.hex(), address, exc)
            return None
        return address_from_return_data(data)

    @staticmethod
    async def has_code(context: ProbeContext, address: str) -> bool:
        try:
            code = await context.provider.get_code(address)
        except Exception as exc:
            logger.debug("get_code(%s) failed: %s", address, exc)
            return False
        return not is_empty_code(code)
