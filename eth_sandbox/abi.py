"""ABI loading from the bundled ABI files.

Provides functions to load ABI files and construct :py:class:`web3.contract.Contract` types.
The results are cached for the speedup.

We only ship the minimal interfaces the sandbox needs to talk to:
ERC-20 tokens, Synthetix style proxy tokens, the automation registry and ``BotAuth``.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Type, Union

from eth_typing import HexAddress
from web3 import Web3
from web3.contract.contract import Contract

# How big are our ABI and contract caches
_CACHE_SIZE = 64


#: Ethereum 0x0000000000000000000000000000000000000000 address
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@lru_cache(maxsize=_CACHE_SIZE)
def get_abi_by_filename(fname: str) -> list | dict:
    """Reads a embedded ABI file and returns it.

    Example::

        abi = get_abi_by_filename("ERC20.json")

    Loaded ABI files are cache in in-process memory to speed up future loading.

    :param fname:
        JSON filename in ``eth_sandbox/abi``, or an absolute path.

    :return:
        Etherscan style ABI list or a compiler artifact dict.
    """

    path = Path(fname)
    if not path.is_absolute():
        here = Path(__file__).resolve().parent
        path = here / "abi" / path

    with open(path, "rt", encoding="utf-8") as f:
        abi = json.load(f)
    return abi


@lru_cache(maxsize=_CACHE_SIZE)
def get_contract(web3: Web3, fname: str) -> Type[Contract]:
    """Get Contract proxy class from ABI JSON file.

    Any results are cached. Web3 connection is part of the cache key.

    Example:

    .. code-block:: python

        ERC20 = get_contract(web3, "ERC20.json")

    :return:
        Contract proxy class
    """

    contract_interface = get_abi_by_filename(fname)

    if type(contract_interface) == list:
        # Etherscan copy-paste
        abi = contract_interface
    else:
        # Solc output
        abi = contract_interface["abi"]

    return web3.eth.contract(abi=abi)


def get_deployed_contract(
    web3: Web3,
    fname: str,
    address: Union[HexAddress, str],
) -> Contract:
    """Get a Contract proxy object for a contract deployed at a specific address.

    `See Web3.py documentation on Contract instances <https://web3py.readthedocs.io/en/stable/contracts.html#contract-deployment-example>`_.

    :param web3:
        Web3 instance bound to a sandbox

    :param fname:
        JSON filename in ``eth_sandbox/abi``

    :param address:
        Ethereum address of the deployed contract

    :return:
        `web3.contract.Contract` proxy
    """
    assert isinstance(web3, Web3), f"Got {type(web3)} instead of Web3"
    assert address, f"get_deployed_contract() address was None"

    address = Web3.to_checksum_address(address)

    Contract = get_contract(web3, fname)
    return Contract(address)
