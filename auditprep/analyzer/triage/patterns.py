"""Path and filename pattern tables for audit triage.

Each table is an ordered list of ``(pattern, reason)`` pairs evaluated
top-to-bottom; the first match supplies the reason recorded for a file.
Paths are matched in their forward-slash form, relative to the project root.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from auditprep.core.types import FileClassification


@dataclass(frozen=True)
class PathRule:
    pattern: re.Pattern[str]
    reason: str

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None


def _rules(reason: str, *patterns: str, flags: int = re.IGNORECASE) -> tuple[PathRule, ...]:
    return tuple(PathRule(re.compile(p, flags), reason) for p in patterns)


# 🚨 Project-owned copies of third-party code. Never auto-excluded.
RED_FLAG_PATHS = _rules(
    "red-flag-path",
    r"^contracts/lib/",
    r"^contracts/vendor/",
    r"^contracts/external/",
    r"^contracts/utils/",       # the project's utils, not @openzeppelin/contracts/utils
    r"^contracts/libraries/",
    r"^src/lib/",
    r"^src/vendor/",
    r"^src/external/",
    r"^src/utils/",
    r"^lib/",
    r"^vendor/",
    r"^external/",
)

RED_FLAG_WARNING = (
    "CRITICAL: file lives in a project lib/, vendor/, external/ or utils/ directory "
    "and may be modified vendor code. Must audit!"
)

BUILD_ARTIFACT_PATTERNS = _rules(
    "build-artifact",
    r"\bout/",
    r"\bartifacts/",
    r"\bcache/",
    r"\btypechain/",
    r"\btypechain-types/",
    r"\babi/",
    r"\babis/",
    r"\bbuild/",
    r"\bcoverage/",
    r"\bnode_modules/",
)

DEV_TOOLING_PATTERNS = _rules(
    "dev-tooling",
    r"\btest/",
    r"\btests/",
    r"\bscripts?/",
    r"\bdeploy/",
    r"\bdeployment/",
    r"\bdeployments/",
    r"\bmocks?/",
    r"\bexamples?/",
    r"\bdemo/",
    r"\bbenchmarks?/",
    r"\bforge-std/",
    r"\bdapp-tools/",
    r"\bds-test/",
    r"\bhardhat/",
    r"\bfoundry/",
)

# Case-sensitive: ``Utils.sol`` is a helper, ``Futils.sol`` is not.
SAFE_FILENAME_PATTERNS = _rules(
    "test-file",
    r"Test\.sol$",
    r"\.t\.sol$",
    r"\.s\.sol$",
    r"Mock\.sol$",
    r"Harness\.sol$",
    r"Script\.sol$",
    r"Deploy\.sol$",
    r"Helper\.sol$",
    r"Utils\.sol$",
    flags=0,
)

# Widely audited packages, matched anywhere in the path.
VENDOR_LIBRARY_PREFIXES: tuple[str, ...] = (
    "@openzeppelin-contracts/",
    "openzeppelin-contracts/",
    "openzeppelin-upgradeable/",
    "openzeppelin-contracts-upgradeable/",
    "@openzeppelin/",
    "@prb/math/",
    "prb-math/",
    "@rari-capital/solmate/",
    "@transmissions11/solmate/",
    "solmate/",
    "solady/",
    "@uniswap/",
    "@balancer-labs/",
    "@aave/",
    "aave-v3-core/",
    "@compound-finance/",
    "@chainlink/",
    "@api3/",
    "@uma/",
    "@gnosis.pm/",
    "@ensdomains/",
    "@eth-optimism/",
    "@layerzerolabs/",
    "@matterlabs/",
)

VENDOR_LIBRARY_PATTERNS = tuple(
    PathRule(re.compile(rf"(?:^|/){re.escape(prefix)}"), "vendor-library")
    for prefix in VENDOR_LIBRARY_PREFIXES
)

# Exclusion tables in precedence order, each with the bucket it feeds.
EXCLUSION_TABLES: tuple[tuple[tuple[PathRule, ...], FileClassification], ...] = (
    (BUILD_ARTIFACT_PATTERNS, FileClassification.EXCLUDED_BUILD_ARTIFACT),
    (DEV_TOOLING_PATTERNS, FileClassification.EXCLUDED_DEV_TOOLING),
    (SAFE_FILENAME_PATTERNS, FileClassification.EXCLUDED_DEV_TOOLING),
    (VENDOR_LIBRARY_PATTERNS, FileClassification.EXCLUDED_VENDOR),
)


def normalize_path(path: str) -> str:
    """Forward slashes, no leading slash: the form every table is written for."""
    return path.replace("\\", "/").lstrip("/")


def first_match(rules: tuple[PathRule, ...], path: str) -> PathRule | None:
    for rule in rules:
        if rule.matches(path):
            return rule
    return None


def is_red_flag_path(path: str) -> bool:
    return first_match(RED_FLAG_PATHS, path) is not None


def match_blacklist(blacklist: tuple[str, ...], path: str) -> str | None:
    """Return the first blacklist substring contained in ``path``."""
    normalized = normalize_path(path)
    for entry in blacklist:
        if entry in normalized:
            return entry
    return None
