"""Grant automation bot permissions on a sandbox.

Strategy executions can only be triggered by callers approved in the ``BotAuth`` contract.
On a sandbox we can send transactions as the automation owner without its private key,
so we simply call ``BotAuth.addCaller(bot)`` as the owner.

``BotAuth`` address is resolved from the on-chain contract registry each time.
Registry ids are the first 4 bytes of ``keccak256(name)``.
"""

import logging

from eth_typing import HexAddress
from eth_utils import keccak
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import Web3Exception

from eth_sandbox.abi import ZERO_ADDRESS, get_deployed_contract
from eth_sandbox.chain_config import ChainConfig
from eth_sandbox.tenderly.config import ADD_CALLER_GAS_LIMIT

logger = logging.getLogger(__name__)


class AuthorisationFailure(Exception):
    """Could not grant bot permissions.

    The owner account may be unfunded, the transaction reverted
    or the registry does not know ``BotAuth`` on this chain.
    """

    def __init__(self, msg: str, chain_id: int, bot_address: HexAddress | None = None):
        super().__init__(msg)
        self.chain_id = chain_id
        self.bot_address = bot_address


def get_name_id(name: str) -> bytes:
    """Get the registry id of a contract name.

    Example:

    .. code-block:: python

        assert get_name_id("BotAuth").hex() == keccak(text="BotAuth")[0:4].hex()

    :return:
        bytes4
    """
    return keccak(text=name)[0:4]


def fetch_registry_address(web3: Web3, chain_config: ChainConfig, name: str) -> HexAddress:
    """Look up a contract address from the registry by its name.

    Not cached, registry updates are seen immediately.

    :raise AuthorisationFailure:
        The name is not registered
    """
    registry = get_deployed_contract(web3, "DFSRegistry.json", chain_config.registry)
    address = registry.functions.getAddr(get_name_id(name)).call()
    if address == ZERO_ADDRESS:
        raise AuthorisationFailure(f"Contract {name} not in the registry {chain_config.registry} on chain {chain_config.chain_id}", chain_id=chain_config.chain_id)
    logger.debug("Registry resolved %s to %s", name, address)
    return address


def add_bot_caller(
    web3: Web3,
    chain_config: ChainConfig,
    bot_address: HexAddress | str,
    gas_limit: int = ADD_CALLER_GAS_LIMIT,
) -> HexBytes:
    """Approve a bot account in ``BotAuth``.

    - Sends an unsigned transaction as the chain owner account,
      the sandbox must allow this

    - Waits for the receipt

    :param web3:
        Web3 connected to the sandbox

    :param chain_config:
        Owner and registry of the sandbox chain

    :param bot_address:
        Account to approve

    :return:
        Transaction hash

    :raise AuthorisationFailure:
        If the call cannot be made or it reverts
    """
    assert bot_address.startswith("0x"), f"Not an address: {bot_address}"

    chain_id = chain_config.chain_id
    bot_auth_address = fetch_registry_address(web3, chain_config, "BotAuth")
    bot_auth = get_deployed_contract(web3, "BotAuth.json", bot_auth_address)

    logger.info("Adding bot caller %s to BotAuth %s on chain %d as owner %s", bot_address, bot_auth_address, chain_id, chain_config.owner)

    try:
        tx_hash = bot_auth.functions.addCaller(Web3.to_checksum_address(bot_address)).transact(
            {
                "from": chain_config.owner,
                "gas": gas_limit,
            }
        )
        receipt = web3.eth.wait_for_transaction_receipt(tx_hash)
    except (Web3Exception, ValueError) as e:
        raise AuthorisationFailure(f"addCaller({bot_address}) failed on chain {chain_id}: {e}", chain_id=chain_id, bot_address=bot_address) from e

    if receipt["status"] != 1:
        raise AuthorisationFailure(f"addCaller({bot_address}) reverted on chain {chain_id}, tx {tx_hash.hex()}", chain_id=chain_id, bot_address=bot_address)

    return tx_hash
