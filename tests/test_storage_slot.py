"""Balance storage slot calculation."""

import pytest
from eth_utils import encode_hex, keccak

from eth_sandbox.slot_catalog import TokenLayoutDescriptor
from eth_sandbox.storage_slot import (
    MAX_UINT256,
    calculate_balance_storage_slot,
    calculate_mapping_storage_slot,
    canonicalise_storage_key,
    encode_storage_value,
)


ACCOUNT = "0x" + "aa" * 20


def _pad32(data: bytes) -> bytes:
    return data.rjust(32, b"\x00")


def test_solidity_slot():
    """Solidity hashes the key first, the slot second."""
    expected = keccak(_pad32(bytes.fromhex("aa" * 20)) + _pad32((3).to_bytes(1, "big")))
    key = calculate_mapping_storage_slot(ACCOUNT, 3, is_vyper=False)
    assert key == canonicalise_storage_key(encode_hex(expected))


def test_vyper_slot():
    """Vyper hashes the slot first, the key second."""
    expected = keccak(_pad32((3).to_bytes(1, "big")) + _pad32(bytes.fromhex("aa" * 20)))
    key = calculate_mapping_storage_slot(ACCOUNT, 3, is_vyper=True)
    assert key == canonicalise_storage_key(encode_hex(expected))


@pytest.mark.parametrize(
    "account",
    [
        ACCOUNT,
        "0x" + "00" * 19 + "01",
        "0x" + "00" * 19 + "03",
        "0x7Be8076f4EA4A4AD08075C2508e481d6C946D12b",
        "0x" + "ff" * 20,
    ],
)
@pytest.mark.parametrize("slot", [0, 1, 3, 9, 51, 2**64, 2**255])
def test_solidity_and_vyper_differ(account, slot):
    solidity = calculate_balance_storage_slot(account, TokenLayoutDescriptor(is_vyper=False, slot=slot))
    vyper = calculate_balance_storage_slot(account, TokenLayoutDescriptor(is_vyper=True, slot=slot))
    assert solidity != vyper

    key = _pad32(bytes.fromhex(account[2:]))
    slot_word = slot.to_bytes(32, "big")
    assert solidity == canonicalise_storage_key(encode_hex(keccak(key + slot_word)))
    assert vyper == canonicalise_storage_key(encode_hex(keccak(slot_word + key)))


def test_slot_number_changes_key():
    assert calculate_mapping_storage_slot(ACCOUNT, 0, False) != calculate_mapping_storage_slot(ACCOUNT, 1, False)


def test_address_case_does_not_matter():
    upper = "0x" + "AA" * 20
    assert calculate_mapping_storage_slot(ACCOUNT, 9, False) == calculate_mapping_storage_slot(upper, 9, False)


def test_canonicalise_strips_leading_zeroes():
    assert canonicalise_storage_key("0x000abc") == "0xabc"
    assert canonicalise_storage_key("0x0") == "0x"
    assert canonicalise_storage_key("0xabc0") == "0xabc0"


def test_canonicalise_is_idempotent():
    key = "0x00" + "1f" * 31
    once = canonicalise_storage_key(key)
    assert canonicalise_storage_key(once) == once
    assert once == "0x1f" + "1f" * 30


def test_calculated_key_never_has_leading_zero():
    for slot in range(0, 64):
        key = calculate_mapping_storage_slot(ACCOUNT, slot, False)
        assert not key.startswith("0x0")


def test_encode_storage_value():
    assert encode_storage_value(0) == "0x" + "00" * 32
    assert encode_storage_value(1000 * 10**18) == "0x" + (1000 * 10**18).to_bytes(32, "big").hex()
    assert len(encode_storage_value(MAX_UINT256)) == 66


def test_encode_storage_value_out_of_range():
    with pytest.raises(ValueError):
        encode_storage_value(MAX_UINT256 + 1)

    with pytest.raises(ValueError):
        encode_storage_value(-1)
