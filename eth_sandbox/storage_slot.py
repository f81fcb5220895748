"""ERC-20 balance storage slot calculation.

For a Solidity ``mapping(address => uint256) balanceOf`` declared at slot ``p``,
the balance of ``account`` is stored at

.. code-block:: text

    keccak256(abi.encode(account, p))

Vyper ``HashMap[address, uint256]`` swaps the hash inputs:

.. code-block:: text

    keccak256(abi.encode(p, account))

Getting the order wrong gives a valid looking slot that ``balanceOf()`` never reads.

See also

- `Solidity storage layout of mappings <https://docs.soliditylang.org/en/latest/internals/layout_in_storage.html#mappings-and-dynamic-arrays>`__
"""

from eth_abi import encode
from eth_typing import HexAddress, HexStr
from eth_utils import encode_hex, keccak, to_checksum_address

from eth_sandbox.slot_catalog import TokenLayoutDescriptor


#: Largest value fitting a storage word
MAX_UINT256 = 2**256 - 1


def canonicalise_storage_key(key: HexStr | str) -> HexStr:
    """Strip leading zero nibbles from a storage key.

    Tenderly storage slot lookups expect keys without leading zeroes,
    so ``0x0abc...`` becomes ``0xabc...``. Applying this twice
    gives the same result as applying it once.

    :param key:
        0x prefixed hex string
    """
    assert key.startswith("0x"), f"Storage key must be 0x prefixed: {key}"
    while key.startswith("0x0"):
        key = "0x" + key[3:]
    return HexStr(key)


def calculate_mapping_storage_slot(account: HexAddress | str, slot: int, is_vyper: bool) -> HexStr:
    """Calculate the raw storage slot of ``mapping[account]``.

    :param account:
        Mapping key

    :param slot:
        Storage slot number where the mapping is declared

    :param is_vyper:
        Use Vyper ordering of hash inputs

    :return:
        Canonicalised 0x prefixed storage key
    """
    assert type(slot) == int and slot >= 0, f"Bad slot number: {slot}"
    account = to_checksum_address(account)

    if is_vyper:
        preimage = encode(["uint256", "address"], [slot, account])
    else:
        preimage = encode(["address", "uint256"], [account, slot])

    return canonicalise_storage_key(encode_hex(keccak(preimage)))


def calculate_balance_storage_slot(account: HexAddress | str, layout: TokenLayoutDescriptor) -> HexStr:
    """Calculate the storage slot holding ``balanceOf[account]`` for a token.

    Example:

    .. code-block:: python

        layout = TokenLayoutDescriptor(is_vyper=False, slot=9)
        key = calculate_balance_storage_slot("0x7Be8076f4EA4A4AD08075C2508e481d6C946D12b", layout)
    """
    return calculate_mapping_storage_slot(account, layout.slot, layout.is_vyper)


def encode_storage_value(raw_amount: int) -> HexStr:
    """Encode an integer as a 32 bytes storage word.

    :return:
        0x prefixed, 64 hex characters
    """
    assert type(raw_amount) == int, f"Expected int, got {type(raw_amount)}: {raw_amount}"
    if not 0 <= raw_amount <= MAX_UINT256:
        raise ValueError(f"Value does not fit uint256: {raw_amount}")
    return HexStr("0x" + raw_amount.to_bytes(32, "big").hex())
