"""Tests for address parsing helpers."""

from __future__ import annotations

from auditprep.core.addresses import (
    ZERO_ADDRESS,
    address_from_return_data,
    address_from_word,
    addresses_in_abi_words,
    is_address_format,
    is_empty_code,
    to_checksum,
)

from auditprep.tests.conftest import WETH_ADDRESS, word


class TestChecksum:
    def test_lowercase_is_checksummed(self):
        assert to_checksum(WETH_ADDRESS.lower()) == WETH_ADDRESS

    def test_bad_mixed_case_checksum_rejected(self):
        broken = WETH_ADDRESS[:2] + WETH_ADDRESS[2:].swapcase()
        assert to_checksum(broken) is None

    def test_single_case_input_is_checksummed(self):
        assert to_checksum(WETH_ADDRESS) == WETH_ADDRESS
        assert to_checksum("0x" + WETH_ADDRESS[2:].upper()) == WETH_ADDRESS

    def test_zero_and_malformed_rejected(self):
        assert to_checksum(ZERO_ADDRESS) is None
        assert to_checksum("0x1234") is None
        assert to_checksum("") is None
        assert to_checksum(None) is None

    def test_format_check(self):
        assert is_address_format("0x" + "a" * 40)
        assert not is_address_format("a" * 42)
        assert not is_address_format("0x" + "g" * 40)


class TestSlotDecoding:
    def test_right_aligned_word(self):
        assert address_from_word(word(WETH_ADDRESS)) == WETH_ADDRESS

    def test_hex_string_word(self):
        assert address_from_word("0x" + word(WETH_ADDRESS).hex()) == WETH_ADDRESS

    def test_zero_word_is_no_result(self):
        assert address_from_word(bytes(32)) is None
        assert address_from_word(b"") is None

    def test_return_data_with_dirty_upper_bytes_rejected(self):
        dirty = b"\x01" + word(WETH_ADDRESS)[1:]
        assert address_from_return_data(dirty) is None

    def test_short_return_data_rejected(self):
        assert address_from_return_data(b"\x00" * 20) is None


class TestAbiWords:
    def test_finds_address_words_only(self):
        amount = (2**255 + 10**18).to_bytes(32, "big")
        data = word(WETH_ADDRESS) + amount + word(WETH_ADDRESS)
        assert addresses_in_abi_words(data.hex()) == [WETH_ADDRESS]

    def test_non_hex_input_is_empty(self):
        assert addresses_in_abi_words("not-hex") == []


def test_empty_code_forms():
    assert is_empty_code(b"")
    assert is_empty_code("0x")
    assert is_empty_code("0x0")
    assert not is_empty_code(b"\x60\x80")
