"""Tenderly RPC specific methods and helpers.

- `Tenderly <https://tenderly.co>`__ is software-as-a-service debugger for EVM chains

- Tenderly forks expose non-standard JSON-RPC methods to manipulate the fork state,
  `see the list of cheatcodes <https://docs.tenderly.co/virtual-testnets/admin-rpc>`__.

All functions take the :py:class:`Web3` instance bound to the sandbox
as the first argument. We never rebind a shared provider.
"""

import logging
from typing import Any, Iterable, Optional

from eth_typing import HexAddress, HexStr
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3 import Web3

logger = logging.getLogger(__name__)


class RPCRequestError(Exception):
    """Sandbox JSON-RPC node returned an error for a custom method."""


def is_tenderly(web3: Web3) -> bool:
    """Check if the given web3 instance is connected to Tenderly RPC.

    :param web3: Web3 instance to check
    :return: True if the web3 instance is connected to Tenderly RPC, False otherwise
    """
    return "tenderly" in getattr(web3.provider, "endpoint_uri", "").lower()


def make_tenderly_custom_rpc_request(web3: Web3, method: str, args: Optional[list] = None) -> Any:
    """Make a request to special named EVM JSON-RPC endpoint.

    - Goes directly to the provider, middleware is not involved

    :param method:
        RPC endpoint name

    :param args:
        JSON-RPC call arguments

    :return:
        RPC result

    :raise RPCRequestError:
        In the case RPC method errors
    """

    if args is None:
        args = ()

    args = tuple(args)

    try:
        response = web3.provider.make_request(method, args)  # type: ignore
        if "result" in response:
            return response["result"]

    except (AttributeError, RequestsConnectionError) as e:
        raise RPCRequestError(f"Web3 is not connected, could not call {method}") from e

    error = response.get("error") or {}
    raise RPCRequestError(f"{method} failed: {error.get('message', response)}")


def set_storage_at(web3: Web3, address: HexAddress | str, slot: HexStr | str, value: HexStr | str):
    """Call tenderly_setStorageAt.

    Overwrite a raw storage slot of a contract.

    :param address:
        Contract which storage we write

    :param slot:
        0x prefixed storage key

    :param value:
        0x prefixed 32 bytes word
    """
    assert slot.startswith("0x"), f"Storage slot must be 0x prefixed: {slot}"
    assert value.startswith("0x") and len(value) == 66, f"Storage value must be 0x prefixed 32 bytes: {value}"
    if not is_tenderly(web3):
        logger.warning("Writing storage of %s through a non-Tenderly node %s, the node may not support tenderly_setStorageAt", address, getattr(web3.provider, "endpoint_uri", web3.provider))
    logger.debug("tenderly_setStorageAt %s %s %s", address, slot, value)
    make_tenderly_custom_rpc_request(web3, "tenderly_setStorageAt", [address, slot, value])


def set_native_balance(web3: Web3, addresses: Iterable[HexAddress | str], raw_amount: int):
    """Call tenderly_setBalance.

    Set native token balance (ETH) of one or more accounts.

    The new balances are read back.

    :param raw_amount:
        Amount in wei, set for all addresses

    :raise RPCRequestError:
        The node accepted the call but some balance did not change
    """
    assert type(raw_amount) == int, f"Expected raw int amount, got {type(raw_amount)}"
    addresses = list(addresses)
    logger.info("Setting native balance of %d accounts to %d wei", len(addresses), raw_amount)
    make_tenderly_custom_rpc_request(web3, "tenderly_setBalance", [addresses, hex(raw_amount)])

    for address in addresses:
        balance = web3.eth.get_balance(Web3.to_checksum_address(address))
        if balance != raw_amount:
            raise RPCRequestError(f"Failed to update balance of {address}: expected {raw_amount} wei, got {balance}")


def mine(web3: Web3):
    """Call evm_mine.

    Force the sandbox to produce a block, so any pending state writes
    are visible for subsequent reads.
    """
    make_tenderly_custom_rpc_request(web3, "evm_mine", [])


def increase_time(web3: Web3, seconds: int):
    """Call evm_increaseTime.

    Does not mine, see :py:func:`mine`.
    """
    make_tenderly_custom_rpc_request(web3, "evm_increaseTime", [hex(seconds)])


def set_next_block_timestamp(web3: Web3, timestamp: int):
    """Call evm_setNextBlockTimestamp.

    Does not mine, see :py:func:`mine`.
    """
    make_tenderly_custom_rpc_request(web3, "evm_setNextBlockTimestamp", [hex(timestamp)])
