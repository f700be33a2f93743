"""Address parsing helpers shared by the proxy probes and the fetch pipeline."""

from __future__ import annotations

import re

from web3 import Web3

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HEX_RE = re.compile(r"^[0-9a-f]*$")


def is_address_format(value: str) -> bool:
    """True for ``0x`` followed by exactly 40 hex characters."""
    return bool(value) and _ADDRESS_RE.match(value) is not None


def to_checksum(value: str | None) -> str | None:
    """Checksum a candidate address, or None if it is not a usable address.

    Mixed-case input must already carry a valid EIP-55 checksum. The zero
    address is never usable.
    """
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    if not is_address_format(value):
        return None
    digits = value[2:]
    if digits != digits.lower() and digits != digits.upper() and not Web3.is_checksum_address(value):
        return None
    if value.lower() == ZERO_ADDRESS:
        return None
    return Web3.to_checksum_address(value)


def to_hex(value: bytes | str | None) -> str:
    """Lower-case hex without ``0x`` for bytes, HexBytes or hex strings."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    return text


def is_hex(value: str) -> bool:
    return _HEX_RE.match(value) is not None


def is_empty_code(code: bytes | str | None) -> bool:
    """True for ``0x``, ``0x0`` and missing bytecode."""
    return to_hex(code) in ("", "0")


def address_from_word(value: bytes | str | None) -> str | None:
    """Interpret a 32-byte storage word as a right-aligned 20-byte address."""
    hex_value = to_hex(value)
    if not hex_value or not is_hex(hex_value):
        return None
    hex_value = hex_value.rjust(64, "0")[-64:]
    return to_checksum("0x" + hex_value[-40:])


def address_from_return_data(data: bytes | str | None) -> str | None:
    """Decode an ABI-encoded ``address`` return value.

    Short data, dirty upper bytes or the zero address mean "no answer".
    """
    hex_data = to_hex(data)
    if len(hex_data) < 64 or not is_hex(hex_data):
        return None
    word = hex_data[:64]
    if int(word[:24], 16) != 0:
        return None
    return to_checksum("0x" + word[24:])


def addresses_in_abi_words(data: bytes | str | None) -> list[str]:
    """Address-shaped values in an ABI-encoded argument blob, in order.

    A 32-byte word is address-shaped when its upper 12 bytes are zero and
    the remaining 20 bytes are a non-zero address.
    """
    hex_data = to_hex(data)
    found: list[str] = []
    if not is_hex(hex_data):
        return found
    for offset in range(0, len(hex_data) - 63, 64):
        word = hex_data[offset:offset + 64]
        if int(word[:24], 16) != 0:
            continue
        address = to_checksum("0x" + word[24:])
        if address and address not in found:
            found.append(address)
    return found
