"""EVM chains auditprep can fetch from, keyed by CLI name."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ChainConfig:
    """Explorer chain id and RPC endpoint for one network."""

    key: str
    chain_id: int
    name: str
    rpc_url: str
    rpc_url_env: str  # Environment variable overriding rpc_url
    explorer_url: str
    native_currency: str = "ETH"

    def resolve_rpc_url(self) -> str:
        """Return the RPC endpoint, honouring the environment override."""
        if self.rpc_url_env:
            return os.environ.get(self.rpc_url_env) or self.rpc_url
        return self.rpc_url


# ── Chain Registry ───────────────────────────────────────────────────────────

CHAINS: dict[str, ChainConfig] = {
    "ethereum": ChainConfig(
        key="ethereum",
        chain_id=1,
        name="Ethereum",
        rpc_url="https://ethereum.publicnode.com",
        rpc_url_env="AUDITPREP_ETHEREUM_RPC_URL",
        explorer_url="https://etherscan.io",
    ),
    "bsc": ChainConfig(
        key="bsc",
        chain_id=56,
        name="BNB Smart Chain",
        rpc_url="https://bsc-rpc.publicnode.com",
        rpc_url_env="AUDITPREP_BSC_RPC_URL",
        explorer_url="https://bscscan.com",
        native_currency="BNB",
    ),
    "base": ChainConfig(
        key="base",
        chain_id=8453,
        name="Base",
        rpc_url="https://base-rpc.publicnode.com",
        rpc_url_env="AUDITPREP_BASE_RPC_URL",
        explorer_url="https://basescan.org",
    ),
    "arbitrum": ChainConfig(
        key="arbitrum",
        chain_id=42161,
        name="Arbitrum One",
        rpc_url="https://arbitrum.publicnode.com",
        rpc_url_env="AUDITPREP_ARBITRUM_RPC_URL",
        explorer_url="https://arbiscan.io",
    ),
    "polygon": ChainConfig(
        key="polygon",
        chain_id=137,
        name="Polygon Mainnet",
        rpc_url="https://polygon-bor-rpc.publicnode.com",
        rpc_url_env="AUDITPREP_POLYGON_RPC_URL",
        explorer_url="https://polygonscan.com",
        native_currency="POL",
    ),
    "optimism": ChainConfig(
        key="optimism",
        chain_id=10,
        name="Optimism",
        rpc_url="https://optimism-rpc.publicnode.com",
        rpc_url_env="AUDITPREP_OPTIMISM_RPC_URL",
        explorer_url="https://optimistic.etherscan.io",
    ),
    "avalanche": ChainConfig(
        key="avalanche",
        chain_id=43114,
        name="Avalanche C-Chain",
        rpc_url="https://api.avax.network/ext/bc/C/rpc",
        rpc_url_env="AUDITPREP_AVALANCHE_RPC_URL",
        explorer_url="https://snowtrace.io",
        native_currency="AVAX",
    ),
}


def _normalize(chain_name: str) -> str:
    return chain_name.strip().lower()


def get_chain_config(chain_name: str) -> ChainConfig | None:
    """Get chain configuration by name."""
    return CHAINS.get(_normalize(chain_name))


def is_chain_supported(chain_name: str) -> bool:
    return _normalize(chain_name) in CHAINS


def get_supported_chains() -> list[str]:
    """Return the names of all supported chains."""
    return list(CHAINS.keys())
