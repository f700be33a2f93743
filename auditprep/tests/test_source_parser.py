"""Tests for explorer source payload parsing."""

from __future__ import annotations

import json

from auditprep.core.types import SourceType
from auditprep.ingestion.source_parser import (
    SINGLE_FILE_NAME,
    parse_source_code,
    rename_single_file,
)


class TestParseSourceCode:
    def test_empty_payloads(self):
        for payload in (None, "", "   \n"):
            tree = parse_source_code(payload)
            assert tree.source_type is SourceType.EMPTY
            assert tree.files == {}

    def test_single_file_keeps_text_verbatim(self):
        source = "  pragma solidity ^0.8.0;\ncontract A {}\n"
        tree = parse_source_code(source)
        assert tree.source_type is SourceType.SINGLE_FILE
        assert tree.files == {SINGLE_FILE_NAME: source}

    def test_double_brace_standard_json(self, standard_json_payload, multi_file_sources):
        tree = parse_source_code(standard_json_payload)
        assert tree.source_type is SourceType.MULTI_FILE
        assert set(tree.files) == set(multi_file_sources)
        assert tree.language == "Solidity"
        assert tree.settings["optimizer"]["runs"] == 200

    def test_wrapped_and_unwrapped_agree(self, standard_json_payload):
        unwrapped = standard_json_payload[1:-1]
        assert parse_source_code(standard_json_payload).files == parse_source_code(unwrapped).files

    def test_standard_json_defaults(self):
        tree = parse_source_code(json.dumps({"sources": {"A.sol": {"content": "contract A {}"}}}))
        assert tree.settings == {}
        assert tree.language == "Solidity"

    def test_flat_json_object(self):
        payload = json.dumps({"A.sol": {"content": "contract A {}"}, "B.sol": "contract B {}"})
        tree = parse_source_code(payload)
        assert tree.source_type is SourceType.MULTI_FILE
        assert tree.files == {"A.sol": "contract A {}", "B.sol": "contract B {}"}

    def test_invalid_json_is_single_file(self):
        payload = "{ this is not json }"
        tree = parse_source_code(payload)
        assert tree.source_type is SourceType.SINGLE_FILE
        assert tree.files[SINGLE_FILE_NAME] == payload

    def test_parse_is_deterministic(self, standard_json_payload):
        assert parse_source_code(standard_json_payload) == parse_source_code(standard_json_payload)


class TestRenameSingleFile:
    def test_renames_to_contract_name(self):
        tree = rename_single_file(parse_source_code("contract Token {}"), "Token")
        assert tree.files == {"Token.sol": "contract Token {}"}

    def test_vyper_extension(self):
        tree = rename_single_file(parse_source_code("@external\ndef f(): pass"), "Pool", "vy")
        assert list(tree.files) == ["Pool.vy"]

    def test_multi_file_untouched(self, standard_json_payload):
        tree = parse_source_code(standard_json_payload)
        assert rename_single_file(tree, "VaultToken") is tree

    def test_missing_name_untouched(self):
        tree = parse_source_code("contract A {}")
        assert rename_single_file(tree, "") is tree


def test_single_file_round_trip():
    source = "contract A {\n    uint x;\n}\n"
    once = parse_source_code(source).files[SINGLE_FILE_NAME]
    assert parse_source_code(once).files[SINGLE_FILE_NAME] == source


def test_unwraps_exactly_one_level_of_braces():
    tree = parse_source_code('{{"sources":{"A.sol":{"content":"X"}}}}')
    assert tree.files == {"A.sol": "X"}
