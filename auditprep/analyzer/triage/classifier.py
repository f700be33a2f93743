"""Audit triage: split a source tree into must-read and skippable files."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath

from auditprep.analyzer.triage.comment_stripper import strip_solidity_comments
from auditprep.analyzer.triage.patterns import (
    EXCLUSION_TABLES,
    RED_FLAG_PATHS,
    RED_FLAG_WARNING,
    VENDOR_LIBRARY_PATTERNS,
    first_match,
    match_blacklist,
    normalize_path,
)
from auditprep.core.config import TriageConfig
from auditprep.core.types import (
    ClassificationResult,
    FileClassification,
    ParsedSourceTree,
    TriageWarning,
)

logger = logging.getLogger(__name__)

_INTERFACE_DECL = re.compile(r"\binterface\s+\w+")
_FUNCTION_WITH_BODY = re.compile(r"function\s+\w+[^;]*\{[^}]*\}")
_PUBLIC_FUNCTION = re.compile(r"function\s+\w+[^{;]*\b(?:external|public)\b")

INTERFACE_NOTE = (
    "Pure interface - review if it defines custom callbacks or hooks"
)


def is_pure_interface(content: str) -> bool:
    """True when a file declares an interface and no function has a body.

    Heuristic: an abstract contract whose functions are all unimplemented
    also reads as an interface here only if it declares one.
    """
    code = strip_solidity_comments(content)
    if not _INTERFACE_DECL.search(code):
        return False
    return _FUNCTION_WITH_BODY.search(code) is None


def count_public_functions(content: str) -> int:
    return len(_PUBLIC_FUNCTION.findall(content))


def _base_name(path: str) -> str:
    return PurePosixPath(path).name


def _stem(path: str) -> str:
    return PurePosixPath(path).stem


class AuditClassifier:
    """Classifies every file of a ParsedSourceTree into one triage bucket.

    Precedence (first match wins):
      1. blacklist substring      -> excludedBlacklisted
      2. red-flag directory       -> redFlag
      3. detected main file       -> main
      4. build artifact path      -> excludedBuildArtifact
      5. dev tooling path         -> excludedDevTooling
      6. safe filename            -> excludedDevTooling
      7. vendor library package   -> excludedVendor
      8. pure interface           -> interface
      9. everything else          -> critical

    With ``red_flag_overrides_blacklist`` steps 1 and 2 swap.
    """

    def __init__(self, config: TriageConfig) -> None:
        self.config = config

    # ── Exclusion rules ──────────────────────────────────────────────────

    def _blacklist_entry(self, path: str) -> str | None:
        return match_blacklist(self.config.blacklist, path)

    def _exclusion(self, path: str) -> tuple[FileClassification, str] | None:
        """Bucket and reason from the path-pattern exclusion tables."""
        path = normalize_path(path)
        for rules, bucket in EXCLUSION_TABLES:
            if rules is VENDOR_LIBRARY_PATTERNS and not self.config.exclude_vendor_libraries:
                continue
            rule = first_match(rules, path)
            if rule:
                return bucket, rule.reason
        return None

    def is_excluded(self, path: str) -> bool:
        """True when a path would never be kept on path rules alone."""
        path = normalize_path(path)
        if first_match(RED_FLAG_PATHS, path):
            return (
                self._blacklist_entry(path) is not None
                and not self.config.red_flag_overrides_blacklist
            )
        if self._blacklist_entry(path):
            return True
        return self._exclusion(path) is not None

    # ── Main contract detection ──────────────────────────────────────────

    def detect_main_contract(
        self,
        files: dict[str, str],
        contract_name: str | None = None,
        contract_file_name: str | None = None,
    ) -> str | None:
        """Find the file holding the declared contract.

        Strategies, first hit wins: explorer-declared file name, declared
        contract name, largest kept file, kept file with the most
        external/public functions.
        """
        if contract_file_name:
            wanted = normalize_path(contract_file_name)
            # Whole path segments first so "Main.sol" does not pick "NotMain.sol".
            for path in files:
                normalized = normalize_path(path)
                if (
                    normalized == wanted
                    or normalized.endswith("/" + wanted)
                    or _base_name(normalized) == wanted
                ):
                    return path
            for path in files:
                if normalize_path(path).endswith(wanted):
                    return path

        if contract_name:
            declaration = re.compile(rf"\b(?:contract|library)\s+{re.escape(contract_name)}\b")
            for path, content in files.items():
                if _stem(path) == contract_name or declaration.search(content):
                    return path

        candidates = {p: c for p, c in files.items() if not self.is_excluded(p)}

        largest: str | None = None
        largest_size = 0
        for path, content in candidates.items():
            size = len(content.encode("utf-8"))
            if size > largest_size:
                largest, largest_size = path, size
        if largest:
            return largest

        # Unreachable while any candidate has content: the size pass above
        # already returned. Kept as the last rule of the documented order.
        most_functions = 0
        for path, content in candidates.items():
            count = count_public_functions(content)
            if count > most_functions:
                largest, most_functions = path, count
        return largest

    # ── Classification ───────────────────────────────────────────────────

    def classify_file(
        self,
        path: str,
        content: str,
        main_contract: str | None = None,
    ) -> tuple[FileClassification, str, TriageWarning | None]:
        """Bucket, reason and optional warning for a single file."""
        blacklist_entry = self._blacklist_entry(path)
        red_flag = first_match(RED_FLAG_PATHS, normalize_path(path))

        if red_flag and (not blacklist_entry or self.config.red_flag_overrides_blacklist):
            return (
                FileClassification.RED_FLAG,
                red_flag.reason,
                TriageWarning(file=path, reason=red_flag.reason, warning=RED_FLAG_WARNING),
            )

        if blacklist_entry:
            warning = None
            if red_flag:
                warning = TriageWarning(
                    file=path,
                    reason="blacklisted-red-flag-path",
                    warning=(
                        f"Skipped by blacklist entry '{blacklist_entry}' although it lives in a "
                        "red-flag directory; it will not be written to disk."
                    ),
                )
            return FileClassification.EXCLUDED_BLACKLISTED, "blacklisted-vendor-library", warning

        if path == main_contract:
            return FileClassification.MAIN, "main-contract", None

        exclusion = self._exclusion(path)
        if exclusion:
            bucket, reason = exclusion
            return bucket, reason, None

        if is_pure_interface(content):
            return (
                FileClassification.INTERFACE,
                "interface",
                TriageWarning(file=path, reason="interface-review", warning=INTERFACE_NOTE),
            )

        return FileClassification.CRITICAL, "custom-contract", None

    def classify(
        self,
        tree: ParsedSourceTree,
        contract_name: str | None = None,
        contract_file_name: str | None = None,
    ) -> ClassificationResult:
        """Classify every file of ``tree``; total over its key set."""
        main_contract = self.detect_main_contract(tree.files, contract_name, contract_file_name)
        if tree.files and main_contract is None:
            logger.warning("Could not determine the main contract file")

        result = ClassificationResult(main_contract=main_contract)
        for path, content in tree.files.items():
            bucket, reason, warning = self.classify_file(path, content, main_contract)
            result.categories[path] = bucket
            result.reasons[path] = reason
            if warning:
                result.warnings.append(warning)
                if bucket is not FileClassification.INTERFACE:
                    logger.warning("%s: %s", path, warning.warning)
        return result


def generate_audit_summary(result: ClassificationResult) -> dict[str, object]:
    """Counts and priority buckets for display; never persisted."""
    total = len(result.categories)
    excluded = result.excluded_files
    red_flags = result.red_flag_files
    return {
        "mainContract": _base_name(result.main_contract) if result.main_contract else "Unknown",
        "mainContractPath": result.main_contract,
        "totalFiles": total,
        "auditFiles": len(result.kept_files),
        "excludedFiles": len(excluded),
        "reductionPercentage": round(len(excluded) / total * 100) if total else 0,
        "hasRedFlags": bool(red_flags),
        "auditPriority": {
            "critical": red_flags,
            "high": [result.main_contract] if result.main_contract else [],
            "medium": result.files_in(FileClassification.CRITICAL),
            "low": result.files_in(FileClassification.INTERFACE),
            "excluded": excluded,
        },
    }
