"""Core configuration for the auditprep toolkit."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BLACKLIST_PATH = Path(__file__).resolve().parent.parent / "config" / "contract-blacklist.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUDITPREP_",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "auditprep"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Block explorer ───────────────────────────────────────────────────
    etherscan_api_key: str = ""
    etherscan_api_url: str = "https://api.etherscan.io/v2/api"
    explorer_timeout_seconds: float = 30.0

    # ── JSON-RPC ─────────────────────────────────────────────────────────
    rpc_timeout_seconds: float = 20.0

    # ── Output ───────────────────────────────────────────────────────────
    output_dir: str = "./evm-chain-contracts"

    # ── Audit triage ─────────────────────────────────────────────────────
    blacklist_path: str = Field(default=str(DEFAULT_BLACKLIST_PATH))
    red_flag_overrides_blacklist: bool = False
    exclude_vendor_libraries: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()


def load_blacklist(path: str | Path | None) -> tuple[str, ...]:
    """Read the contract-file blacklist.

    The file holds ``{"contractFileNames": [...]}``, a list of literal path
    substrings. A missing file is an empty blacklist; an unreadable one is
    logged and also treated as empty.
    """
    if not path:
        return ()
    blacklist_file = Path(path)
    if not blacklist_file.exists():
        return ()
    try:
        data = json.loads(blacklist_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not load blacklist from %s: %s", blacklist_file, exc)
        return ()
    if not isinstance(data, dict):
        logger.warning("Blacklist %s is not a JSON object, ignoring it", blacklist_file)
        return ()
    entries = data.get("contractFileNames") or []
    return tuple(str(entry) for entry in entries if isinstance(entry, str) and entry)


@dataclass(frozen=True)
class TriageConfig:
    """Immutable run configuration handed to the classifier and writer.

    Built once at startup; the blacklist is read from disk exactly once here.
    """

    output_dir: Path
    blacklist: tuple[str, ...] = ()
    red_flag_overrides_blacklist: bool = False
    exclude_vendor_libraries: bool = True

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> TriageConfig:
        settings = settings or get_settings()
        return cls(
            output_dir=Path(settings.output_dir),
            blacklist=load_blacklist(settings.blacklist_path),
            red_flag_overrides_blacklist=settings.red_flag_overrides_blacklist,
            exclude_vendor_libraries=settings.exclude_vendor_libraries,
        )
