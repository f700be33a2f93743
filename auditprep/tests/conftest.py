"""Shared fixtures for the auditprep test suite."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from auditprep.core.config import TriageConfig
from auditprep.core.types import SourceRecord


# ── Well-known addresses ─────────────────────────────────────────────────────

PROXY_ADDRESS = "0x1111111111111111111111111111111111111111"
IMPLEMENTATION_ADDRESS = "0x2222222222222222222222222222222222222222"
BEACON_ADDRESS = "0x3333333333333333333333333333333333333333"
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

RUNTIME_CODE = bytes.fromhex("6080604052348015600f57600080fd5b50")


def word(address: str) -> bytes:
    """32-byte storage word / ABI return value holding ``address``."""
    return bytes.fromhex(address[2:].lower().rjust(64, "0"))


# ── Fake chain access ────────────────────────────────────────────────────────


class FakeChainProvider:
    """In-memory chain: code, storage and eth_call answers keyed by address.

    Addresses are compared case-insensitively. Anything not configured
    reads as empty code, a zero slot or a reverted call.
    """

    def __init__(
        self,
        code: dict[str, bytes] | None = None,
        storage: dict[tuple[str, str], bytes] | None = None,
        calls: dict[tuple[str, bytes], bytes] | None = None,
    ) -> None:
        self.code = {k.lower(): v for k, v in (code or {}).items()}
        self.storage = {(a.lower(), s.lower()): v for (a, s), v in (storage or {}).items()}
        self.calls = {(a.lower(), sel): v for (a, sel), v in (calls or {}).items()}
        self.call_log: list[tuple[str, str]] = []
        self.closed = False

    async def get_code(self, address: str) -> bytes:
        self.call_log.append(("get_code", address))
        return self.code.get(address.lower(), b"")

    async def get_storage_at(self, address: str, slot: str) -> bytes:
        self.call_log.append(("get_storage_at", address))
        return self.storage.get((address.lower(), slot.lower()), bytes(32))

    async def call(self, address: str, selector: bytes) -> bytes:
        self.call_log.append(("call", address))
        key = (address.lower(), selector)
        if key not in self.calls:
            raise RuntimeError("execution reverted")
        return self.calls[key]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_provider_factory():
    """Build FakeChainProviders with a deployed contract at PROXY_ADDRESS by default."""

    def _factory(**kwargs) -> FakeChainProvider:
        kwargs.setdefault("code", {PROXY_ADDRESS: RUNTIME_CODE})
        return FakeChainProvider(**kwargs)

    return _factory


# ── Source payloads ──────────────────────────────────────────────────────────


TOKEN_SOURCE = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.20;

import "@openzeppelin/contracts/token/ERC20/ERC20.sol";
import "./interfaces/IVault.sol";

/// @notice Vault share token
contract VaultToken is ERC20 {
    address public vault; // the owning vault

    constructor(address vault_) ERC20("Vault Share", "vSHARE") {
        vault = vault_;
    }

    function mint(address to, uint256 amount) external {
        require(msg.sender == vault, "only vault // not you");
        _mint(to, amount);
    }
}
"""

INTERFACE_SOURCE = """pragma solidity ^0.8.20;

interface IVault {
    function deposit(uint256 assets) external returns (uint256);
    function totalAssets() external view returns (uint256);
}
"""

OZ_ERC20_SOURCE = """pragma solidity ^0.8.20;

abstract contract ERC20 {
    function _mint(address to, uint256 amount) internal virtual {}
}
"""

VENDORED_MATH_SOURCE = """pragma solidity ^0.8.20;

library FullMath {
    function mulDiv(uint256 a, uint256 b, uint256 d) internal pure returns (uint256) {
        return a * b / d;
    }
}
"""


@pytest.fixture
def multi_file_sources() -> dict[str, dict[str, str]]:
    return {
        "contracts/VaultToken.sol": {"content": TOKEN_SOURCE},
        "contracts/interfaces/IVault.sol": {"content": INTERFACE_SOURCE},
        "@openzeppelin/contracts/token/ERC20/ERC20.sol": {"content": OZ_ERC20_SOURCE},
        "contracts/vendor/FullMath.sol": {"content": VENDORED_MATH_SOURCE},
        "test/VaultToken.t.sol": {"content": "contract VaultTokenTest {}"},
    }


@pytest.fixture
def standard_json_payload(multi_file_sources) -> str:
    """Explorer-style standard JSON input, wrapped in double braces."""
    body = json.dumps(
        {
            "language": "Solidity",
            "sources": multi_file_sources,
            "settings": {"optimizer": {"enabled": True, "runs": 200}},
        }
    )
    return "{" + body + "}"


@pytest.fixture
def verified_record(standard_json_payload) -> SourceRecord:
    return SourceRecord(
        address=PROXY_ADDRESS,
        chain="ethereum",
        verified=True,
        contract_name="VaultToken",
        contract_file_name="contracts/VaultToken.sol",
        source_text=standard_json_payload,
        compiler_version="v0.8.20+commit.a1b79de6",
    )


# ── Triage configuration ─────────────────────────────────────────────────────


@pytest.fixture
def triage_config(tmp_path: Path) -> TriageConfig:
    return TriageConfig(
        output_dir=tmp_path / "out",
        blacklist=("@openzeppelin/contracts/", "chainlink/"),
    )
