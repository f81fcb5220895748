"""Known ERC-20 balance storage layouts.

To fake an ERC-20 balance we need to know where in the token contract storage
the ``balanceOf`` mapping lives. This cannot be discovered from the bytecode alone,
so we keep a manually maintained table of

    chain id -> token address -> (Vyper or Solidity layout, mapping slot number)

If a token is not in the table, its balance cannot be injected.

The table lives in ``eth_sandbox/data/storage_slots.json``. When new tokens
are onboarded, find the slot e.g. by brute forcing slots ``0...20`` on a fork
and checking when ``balanceOf()`` changes, then add the entry to the file.
"""

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from eth_typing import HexAddress
from eth_utils import is_address

logger = logging.getLogger(__name__)


#: Bundled storage slot table
DEFAULT_STORAGE_SLOTS_PATH = Path(__file__).resolve().parent / "data" / "storage_slots.json"


class SlotCatalogError(Exception):
    """Storage slot table has invalid data."""


@dataclass(frozen=True)
class TokenLayoutDescriptor:
    """Where ``balanceOf`` mapping lives in a token contract storage."""

    #: Vyper compiler hashes the mapping slot first, the key second
    is_vyper: bool

    #: The storage slot number of ``balanceOf`` mapping
    slot: int


class SlotLayoutCatalog:
    """Read-only lookup table of token balance storage layouts.

    Example:

    .. code-block:: python

        catalog = load_default_slot_catalog()
        layout = catalog.get(1, "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48")
        assert layout.slot == 9
    """

    def __init__(self, layouts: Mapping[int, Mapping[str, TokenLayoutDescriptor]]):
        #: chain id -> lowercased token address -> layout
        self.layouts = MappingProxyType({chain_id: MappingProxyType(dict(tokens)) for chain_id, tokens in layouts.items()})

    def __repr__(self):
        return f"<SlotLayoutCatalog with {len(self)} tokens on chains {list(self.layouts.keys())}>"

    def __len__(self):
        return sum(len(tokens) for tokens in self.layouts.values())

    def get(self, chain_id: int, token_address: HexAddress | str) -> TokenLayoutDescriptor | None:
        """Look up a token storage layout.

        :param token_address:
            Token address, any case

        :return:
            None if the token balance is not injectable
        """
        assert type(chain_id) == int, f"Chain id must be int, got {type(chain_id)}: {chain_id}"
        assert token_address.startswith("0x"), f"Not an address: {token_address}"
        tokens = self.layouts.get(chain_id)
        if tokens is None:
            return None
        return tokens.get(token_address.lower())

    def is_injectable(self, chain_id: int, token_address: HexAddress | str) -> bool:
        return self.get(chain_id, token_address) is not None

    @staticmethod
    def from_dict(data: dict) -> "SlotLayoutCatalog":
        """Create a catalog from JSON-like data.

        The format is:

        .. code-block:: json

            {"1": {"0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": {"is_vyper": false, "slot": 9}}}

        :raise SlotCatalogError:
            If the data is malformed
        """
        layouts = {}
        for raw_chain_id, tokens in data.items():
            try:
                chain_id = int(raw_chain_id)
            except ValueError as e:
                raise SlotCatalogError(f"Bad chain id: {raw_chain_id}") from e

            chain_layouts = {}
            for address, entry in tokens.items():
                if not isinstance(address, str) or not is_address(address.lower()):
                    raise SlotCatalogError(f"Chain {chain_id}: bad token address {address}")

                key = address.lower()
                if key in chain_layouts:
                    raise SlotCatalogError(f"Chain {chain_id}: duplicate entry for {address}")

                is_vyper = entry.get("is_vyper")
                slot = entry.get("slot")
                if type(is_vyper) != bool:
                    raise SlotCatalogError(f"Chain {chain_id}, token {address}: is_vyper must be bool, got {is_vyper}")
                if type(slot) != int or slot < 0:
                    raise SlotCatalogError(f"Chain {chain_id}, token {address}: slot must be non-negative int, got {slot}")

                chain_layouts[key] = TokenLayoutDescriptor(is_vyper=is_vyper, slot=slot)

            layouts[chain_id] = chain_layouts

        return SlotLayoutCatalog(layouts)

    @staticmethod
    def from_file(path: Path | str) -> "SlotLayoutCatalog":
        """Load a catalog from a JSON file."""
        try:
            with open(path, "rt", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SlotCatalogError(f"Could not read storage slot table {path}: {e}") from e
        catalog = SlotLayoutCatalog.from_dict(data)
        logger.info("Loaded %s from %s", catalog, path)
        return catalog


@lru_cache(maxsize=1)
def load_default_slot_catalog() -> SlotLayoutCatalog:
    """Load the storage slot table once per process.

    Uses ``SANDBOX_STORAGE_SLOTS`` environment variable if set,
    otherwise the bundled table.
    """
    path = os.environ.get("SANDBOX_STORAGE_SLOTS") or DEFAULT_STORAGE_SLOTS_PATH
    return SlotLayoutCatalog.from_file(path)
