"""Typed failures raised by the fetch and triage pipeline.

Every exception carries an ``ErrorCode`` so callers can turn it into a
structured result without string matching:

    try:
        ...
    except AuditPrepError as exc:
        ContractResult(..., success=False, error=exc.message, error_code=exc.code)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


# ── Error Codes ──────────────────────────────────────────────────────────────


class ErrorCode(str, Enum):
    """Standard error codes attached to pipeline failures."""

    UNSUPPORTED_CHAIN = "UNSUPPORTED_CHAIN"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    NO_CONTRACT = "NO_CONTRACT"
    UNVERIFIED_SOURCE = "UNVERIFIED_SOURCE"
    REGISTRY_ERROR = "REGISTRY_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


# ── Exceptions ───────────────────────────────────────────────────────────────


class AuditPrepError(Exception):
    """Base class for all expected pipeline failures."""

    code: ErrorCode = ErrorCode.REGISTRY_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "details": self.details}


class UnsupportedChainError(AuditPrepError):
    code = ErrorCode.UNSUPPORTED_CHAIN

    def __init__(self, chain: str, supported: list[str]) -> None:
        super().__init__(
            f"Unsupported chain: {chain}. Supported chains: {', '.join(supported)}",
            {"chain": chain, "supported": supported},
        )


class InvalidAddressError(AuditPrepError):
    code = ErrorCode.INVALID_ADDRESS

    def __init__(self, address: str) -> None:
        super().__init__(f"Invalid contract address format: {address}", {"address": address})


class NoContractError(AuditPrepError):
    """The target address has no deployed bytecode."""

    code = ErrorCode.NO_CONTRACT

    def __init__(self, address: str) -> None:
        super().__init__(
            f"No bytecode found at address {address}. "
            "This might be an EOA or non-existent contract.",
            {"address": address},
        )


class UnverifiedSourceError(AuditPrepError):
    code = ErrorCode.UNVERIFIED_SOURCE

    def __init__(self, address: str, chain: str) -> None:
        super().__init__(
            f"Contract source code at {address} on {chain} is not verified on block explorer",
            {"address": address, "chain": chain},
        )


class SourceRegistryError(AuditPrepError):
    """The block explorer answered with a non-success status."""

    code = ErrorCode.REGISTRY_ERROR


class PersistenceError(AuditPrepError):
    code = ErrorCode.PERSISTENCE_ERROR
