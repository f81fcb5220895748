"""Per-chain static addresses.

Each supported chain has

- the automation owner account, allowed to grant bot permissions

- the contract registry where ``BotAuth`` and other contracts are looked up by their name id

- a bag of other fixed contract addresses callers may need

The data is loaded once from ``eth_sandbox/data/chain_config.json``
(or from a file given in ``SANDBOX_CHAIN_CONFIG`` environment variable),
validated and then kept in an immutable mapping for the process lifetime.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from eth_typing import HexAddress
from eth_utils import is_address, to_checksum_address

logger = logging.getLogger(__name__)


#: Bundled chain configuration
DEFAULT_CHAIN_CONFIG_PATH = Path(__file__).resolve().parent / "data" / "chain_config.json"


class ConfigurationError(Exception):
    """Static configuration is missing or broken."""


@dataclass(frozen=True)
class ChainConfig:
    """Fixed addresses for one chain."""

    #: Chain id
    chain_id: int

    #: The privileged account that can add bot callers.
    #:
    #: Sandboxes let us send unsigned transactions as this account.
    owner: HexAddress

    #: Contract registry resolving name ids to addresses
    registry: HexAddress

    #: Other named contract addresses, e.g. ``SUB_PROXY``
    contracts: Mapping[str, HexAddress] = field(default_factory=lambda: MappingProxyType({}))

    def get_contract_address(self, name: str) -> HexAddress:
        """Get a named contract address.

        :raise ConfigurationError:
            If the chain does not have this contract configured
        """
        try:
            return self.contracts[name]
        except KeyError as e:
            raise ConfigurationError(f"Contract {name} not configured for chain {self.chain_id}") from e


def _validate_address(chain_id: int, name: str, address: str) -> HexAddress:
    if not isinstance(address, str) or not is_address(address.lower()):
        raise ConfigurationError(f"Chain {chain_id}: {name} is not a valid address: {address}")
    return to_checksum_address(address.lower())


def parse_chain_configs(data: dict) -> Mapping[int, ChainConfig]:
    """Validate raw chain configuration data.

    :param data:
        Chain id (as a string or int) -> ``{"owner", "registry", "contracts"}``

    :return:
        Read-only mapping of chain id -> config

    :raise ConfigurationError:
        On any invalid entry
    """
    configs = {}
    for raw_chain_id, entry in data.items():
        try:
            chain_id = int(raw_chain_id)
        except ValueError as e:
            raise ConfigurationError(f"Bad chain id: {raw_chain_id}") from e

        if not isinstance(entry, dict):
            raise ConfigurationError(f"Chain {chain_id}: expected an object, got {entry}")

        for key in ("owner", "registry"):
            if key not in entry:
                raise ConfigurationError(f"Chain {chain_id}: {key} missing")

        contracts = {name: _validate_address(chain_id, name, address) for name, address in entry.get("contracts", {}).items()}

        configs[chain_id] = ChainConfig(
            chain_id=chain_id,
            owner=_validate_address(chain_id, "owner", entry["owner"]),
            registry=_validate_address(chain_id, "registry", entry["registry"]),
            contracts=MappingProxyType(contracts),
        )

    return MappingProxyType(configs)


@lru_cache(maxsize=None)
def load_chain_configs(path: Path | str | None = None) -> Mapping[int, ChainConfig]:
    """Load chain configuration file.

    The result is cached, so the file is read only once per process.

    :param path:
        JSON file. If not given use ``SANDBOX_CHAIN_CONFIG`` environment variable
        or the bundled default.
    """
    if path is None:
        path = os.environ.get("SANDBOX_CHAIN_CONFIG") or DEFAULT_CHAIN_CONFIG_PATH

    path = Path(path)

    try:
        with open(path, "rt", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read chain config {path}: {e}") from e

    configs = parse_chain_configs(data)
    logger.info("Loaded chain config for chains %s from %s", list(configs.keys()), path)
    return configs


def get_chain_config(chain_id: int, configs: Mapping[int, ChainConfig] | None = None) -> ChainConfig:
    """Get the static config of a chain.

    :param configs:
        Use this config set instead of the default one

    :raise ConfigurationError:
        The chain is not supported
    """
    assert type(chain_id) == int, f"Chain id must be int, got {type(chain_id)}: {chain_id}"

    if configs is None:
        configs = load_chain_configs()

    config = configs.get(chain_id)
    if config is None:
        raise ConfigurationError(f"Chain {chain_id} not configured, we have {list(configs.keys())}")
    return config
