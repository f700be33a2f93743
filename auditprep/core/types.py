"""Shared enums and types used across auditprep."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class ProxyMethod(str, enum.Enum):
    """How an implementation address was discovered."""

    ETHERSCAN_API = "etherscan-api"
    EIP1967 = "eip1967"
    EIP1967_BEACON = "eip1967-beacon"
    OPENZEPPELIN_SLOT = "openzeppelin-slot"
    EIP1822 = "eip1822"
    EIP1167_BYTECODE = "eip1167-bytecode"
    EIP897_CALL = "eip897-call"
    GNOSIS_SAFE = "gnosis-safe"
    SOURCE_ANALYSIS = "source-analysis"
    NONE = "none"


class FileClassification(str, enum.Enum):
    """Audit triage bucket of a single source file."""

    MAIN = "main"
    CRITICAL = "critical"
    RED_FLAG = "redFlag"
    INTERFACE = "interface"
    EXCLUDED_BUILD_ARTIFACT = "excludedBuildArtifact"
    EXCLUDED_DEV_TOOLING = "excludedDevTooling"
    EXCLUDED_VENDOR = "excludedVendor"
    EXCLUDED_BLACKLISTED = "excludedBlacklisted"

    @property
    def is_excluded(self) -> bool:
        return self.value.startswith("excluded")

    @property
    def is_kept(self) -> bool:
        return not self.is_excluded


class ContractType(str, enum.Enum):
    """Role of a contract within one fetch run."""

    MAIN = "main"
    PROXY = "proxy"
    IMPLEMENTATION = "implementation"


class SourceType(str, enum.Enum):
    """Shape of a raw verified-source payload."""

    EMPTY = "empty"
    SINGLE_FILE = "single-file"
    MULTI_FILE = "multi-file"


# ── Registry / chain records ─────────────────────────────────────────────────


class SourceRecord(BaseModel):
    """Verified-source record for one address, as reported by the explorer."""

    model_config = ConfigDict(frozen=True)

    address: str
    chain: str = ""
    verified: bool = False
    contract_name: str = ""
    contract_file_name: str = ""
    source_text: str = ""
    declared_proxy: bool = False
    declared_implementation: str | None = None
    constructor_args: str = ""
    compiler_version: str = ""
    compiler_type: str = ""
    optimization_used: bool = False
    runs: int = 200
    evm_version: str = ""
    abi: str = ""
    license_type: str = ""
    error: str | None = None

    @property
    def is_vyper(self) -> bool:
        return "vyper" in self.compiler_version.lower() or "vyper" in self.compiler_type.lower()


class ProxyResolution(BaseModel):
    """Outcome of one proxy resolution call."""

    model_config = ConfigDict(frozen=True)

    is_proxy: bool = False
    proxy_address: str
    implementation_address: str | None = None
    method: ProxyMethod = ProxyMethod.NONE
    error: str | None = None


# ── Source tree ──────────────────────────────────────────────────────────────


class ParsedSourceTree(BaseModel):
    """Relative file path -> file text, plus compiler-input metadata."""

    source_type: SourceType = SourceType.EMPTY
    files: dict[str, str] = Field(default_factory=dict)
    settings: dict[str, Any] | None = None
    language: str | None = None


# ── Triage ───────────────────────────────────────────────────────────────────


class TriageWarning(BaseModel):
    """A file the auditor must look at for a specific reason."""

    file: str
    reason: str
    warning: str


class ClassificationResult(BaseModel):
    """Audit triage of a whole source tree."""

    main_contract: str | None = None
    categories: dict[str, FileClassification] = Field(default_factory=dict)
    reasons: dict[str, str] = Field(default_factory=dict)
    warnings: list[TriageWarning] = Field(default_factory=list)

    def files_in(self, *classifications: FileClassification) -> list[str]:
        return [path for path, cls in self.categories.items() if cls in classifications]

    @property
    def kept_files(self) -> list[str]:
        return [path for path, cls in self.categories.items() if cls.is_kept]

    @property
    def excluded_files(self) -> list[str]:
        return [path for path, cls in self.categories.items() if cls.is_excluded]

    @property
    def red_flag_files(self) -> list[str]:
        return self.files_in(FileClassification.RED_FLAG)


class AuditManifest(BaseModel):
    """The only metadata persisted per contract directory."""

    model_config = ConfigDict(populate_by_name=True)

    main_contract: str | None = Field(default=None, alias="mainContract")
    main_contract_path: str | None = Field(default=None, alias="mainContractPath")
    contract_type: ContractType = Field(alias="contractType")

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ── Results ──────────────────────────────────────────────────────────────────


class SaveResult(BaseModel):
    """What the output writer left on disk for one contract."""

    output_dir: str
    saved_files: list[str] = Field(default_factory=list)
    deleted_files: list[str] = Field(default_factory=list)
    blacklisted_files: list[str] = Field(default_factory=list)
    kept_files: list[str] = Field(default_factory=list)
    excluded_reasons: dict[str, str] = Field(default_factory=dict)
    warnings: list[TriageWarning] = Field(default_factory=list)
    persistence_errors: list[str] = Field(default_factory=list)
    audit_manifest: AuditManifest


class ContractResult(BaseModel):
    """Per-address outcome within a fetch run."""

    address: str
    contract_type: ContractType
    verified: bool = False
    success: bool = False
    contract_name: str = ""
    error: str | None = None
    error_code: str | None = None
    save: SaveResult | None = None


class FetchResult(BaseModel):
    """Outcome of a complete fetch-and-triage run for one target address."""

    chain: str
    contract_address: str
    proxy_info: ProxyResolution | None = None
    source_results: list[ContractResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return any(r.success for r in self.source_results)
