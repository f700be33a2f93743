"""Normalize explorer source payloads into a file tree.

The explorer returns ``SourceCode`` in one of three shapes:

  * plain source text of a single file
  * a flat JSON object mapping file path -> content (or ``{"content": ...}``)
  * Solidity/Vyper standard JSON input with a ``sources`` key, sometimes
    wrapped in an extra pair of braces (``{{ ... }}``)
"""

from __future__ import annotations

import json
from pathlib import PurePosixPath
from typing import Any

from auditprep.core.types import ParsedSourceTree, SourceType

SINGLE_FILE_NAME = "contract.sol"


def _unwrap_double_braces(text: str) -> str:
    if text.startswith("{{") and text.endswith("}}"):
        return text[1:-1]
    return text


def _load_json_object(text: str) -> dict[str, Any] | None:
    if not text.startswith("{"):
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_source_code(source_code: str | None) -> ParsedSourceTree:
    """Parse a raw verified-source payload. Pure; performs no I/O."""
    if not source_code or not source_code.strip():
        return ParsedSourceTree(source_type=SourceType.EMPTY)

    payload = _load_json_object(_unwrap_double_braces(source_code.strip()))

    if payload is not None and "sources" in payload:
        files: dict[str, str] = {}
        sources = payload.get("sources") or {}
        if isinstance(sources, dict):
            for file_path, file_data in sources.items():
                content = file_data.get("content") if isinstance(file_data, dict) else None
                files[file_path] = content if isinstance(content, str) else ""
        settings = payload.get("settings")
        language = payload.get("language")
        return ParsedSourceTree(
            source_type=SourceType.MULTI_FILE,
            files=files,
            settings=settings if isinstance(settings, dict) else {},
            language=language if isinstance(language, str) else "Solidity",
        )

    if payload is not None:
        files = {}
        for file_path, value in payload.items():
            if isinstance(value, str):
                files[file_path] = value
            elif isinstance(value, dict) and isinstance(value.get("content"), str):
                files[file_path] = value["content"]
        return ParsedSourceTree(source_type=SourceType.MULTI_FILE, files=files)

    return ParsedSourceTree(
        source_type=SourceType.SINGLE_FILE,
        files={SINGLE_FILE_NAME: source_code},
    )


def rename_single_file(
    tree: ParsedSourceTree,
    contract_name: str,
    extension: str = "sol",
) -> ParsedSourceTree:
    """Name a single-file tree after its declared contract.

    ``contract.sol`` becomes ``<contract_name>.<extension>``; any other tree
    is returned unchanged.
    """
    if tree.source_type != SourceType.SINGLE_FILE or not contract_name or len(tree.files) != 1:
        return tree
    (content,) = tree.files.values()
    new_name = f"{PurePosixPath(contract_name).name}.{extension.lstrip('.')}"
    return tree.model_copy(update={"files": {new_name: content}})
