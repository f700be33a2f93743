"""Persist triaged source trees and their audit manifests."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from auditprep.analyzer.triage.comment_stripper import strip_if_solidity
from auditprep.analyzer.triage.patterns import normalize_path
from auditprep.core.config import TriageConfig
from auditprep.core.errors import PersistenceError
from auditprep.core.types import (
    AuditManifest,
    ClassificationResult,
    ContractType,
    FileClassification,
    ParsedSourceTree,
    SaveResult,
)

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "audit-manifest.json"

_ADDRESS_DIR = re.compile(r"^0x[a-fA-F0-9]{40}$")
_RETAINED_DIR_NAMES = {ContractType.PROXY.value, ContractType.IMPLEMENTATION.value}


class OutputWriter:
    """Writes one contract's files under ``<output_dir>/<chain>/<address>``.

    Proxy and implementation contracts are nested one level down in
    ``proxy/`` or ``implementation/``; ``main`` contracts sit directly in
    the address directory. Re-running overwrites earlier output.
    """

    def __init__(self, config: TriageConfig) -> None:
        self.config = config

    def contract_dir(self, chain: str, address: str) -> Path:
        return self.config.output_dir / chain / address

    def create_output_directory(self, chain: str, address: str) -> Path:
        directory = self.contract_dir(chain, address)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def save_source_files(
        self,
        chain: str,
        address: str,
        tree: ParsedSourceTree,
        classification: ClassificationResult,
        contract_type: ContractType = ContractType.MAIN,
        contract_name: str = "",
    ) -> SaveResult:
        base_dir = self.create_output_directory(chain, address)
        target_dir = base_dir
        if contract_type is not ContractType.MAIN:
            target_dir = base_dir / contract_type.value
            target_dir.mkdir(parents=True, exist_ok=True)
        root = target_dir.resolve()

        result = SaveResult(
            output_dir=str(base_dir),
            audit_manifest=AuditManifest(contract_type=contract_type),
            warnings=list(classification.warnings),
        )
        to_delete: list[tuple[str, Path]] = []

        for file_path, content in tree.files.items():
            relative = normalize_path(file_path)
            bucket = classification.categories[file_path]
            reason = classification.reasons.get(file_path, bucket.value)

            if bucket is FileClassification.EXCLUDED_BLACKLISTED:
                result.blacklisted_files.append(relative)
                result.excluded_reasons[relative] = reason
                continue

            full_path = target_dir / relative
            if not full_path.resolve().is_relative_to(root):
                logger.warning("Refusing to write %s outside %s", relative, target_dir)
                result.persistence_errors.append(relative)
                continue

            try:
                full_path.parent.mkdir(parents=True, exist_ok=True)
                full_path.write_text(strip_if_solidity(relative, content), encoding="utf-8")
            except OSError as exc:
                self._record_failure(
                    result,
                    PersistenceError(f"Could not write {relative}: {exc}", {"path": relative}),
                )
                continue
            result.saved_files.append(str(full_path))

            if bucket.is_excluded:
                result.excluded_reasons[relative] = reason
                to_delete.append((relative, full_path))
            else:
                result.kept_files.append(relative)

        for relative, full_path in to_delete:
            try:
                full_path.unlink(missing_ok=True)
            except OSError as exc:
                self._record_failure(
                    result,
                    PersistenceError(f"Could not delete {relative}: {exc}", {"path": relative}),
                )
                continue
            result.deleted_files.append(relative)
            result.saved_files.remove(str(full_path))

        self.cleanup_empty_directories(target_dir)

        if result.blacklisted_files:
            logger.info("Skipped %d blacklisted vendor library file(s)", len(result.blacklisted_files))
        if result.deleted_files:
            logger.info("Deleted %d excluded file(s)", len(result.deleted_files))

        main_path = classification.main_contract
        result.audit_manifest = AuditManifest(
            main_contract=Path(main_path).name if main_path else (contract_name or None),
            main_contract_path=main_path,
            contract_type=contract_type,
        )
        self.write_manifest(target_dir, result.audit_manifest)
        return result

    @staticmethod
    def _record_failure(result: SaveResult, error: PersistenceError) -> None:
        logger.warning("%s", error.message)
        result.persistence_errors.append(error.details["path"])

    @staticmethod
    def write_manifest(directory: Path, manifest: AuditManifest) -> Path:
        manifest_path = directory / MANIFEST_FILE_NAME
        manifest_path.write_text(json.dumps(manifest.to_json_dict(), indent=2), encoding="utf-8")
        return manifest_path

    @staticmethod
    def _is_retained(directory: Path) -> bool:
        return bool(_ADDRESS_DIR.match(directory.name)) or directory.name in _RETAINED_DIR_NAMES

    def cleanup_empty_directories(self, directory: Path) -> None:
        """Remove directories emptied by deletions, bottom-up.

        The per-address directory and ``proxy``/``implementation`` folders
        are always kept.
        """
        if not directory.is_dir():
            return
        for child in directory.iterdir():
            if child.is_dir() and not child.is_symlink():
                self.cleanup_empty_directories(child)
        try:
            if not any(directory.iterdir()) and not self._is_retained(directory):
                directory.rmdir()
        except OSError as exc:
            logger.warning("Could not remove empty directory %s: %s", directory, exc)
