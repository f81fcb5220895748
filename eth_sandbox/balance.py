"""Inject ERC-20 balances into a sandbox.

We do not have private keys of large holders, so instead of transferring tokens
we overwrite the token contract storage slot holding ``balanceOf[account]``.

- The storage layout of the token must be known, see :py:mod:`eth_sandbox.slot_catalog`

- Synthetix style proxy tokens keep balances in a separate ``TokenState`` contract,
  we detect these with :py:func:`probe_token_proxy`

Example:

.. code-block:: python

    web3 = sandbox.create_web3()
    result = set_erc20_balance(web3, 1, USDC, user, Decimal(10_000))
    assert result.success, result.message

The write is absolute: calling this twice with the same arguments
leaves the same final balance.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from eth_typing import HexAddress, HexStr
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from eth_sandbox.abi import get_deployed_contract
from eth_sandbox.provider.tenderly import mine, set_storage_at
from eth_sandbox.slot_catalog import SlotLayoutCatalog, load_default_slot_catalog
from eth_sandbox.storage_slot import calculate_balance_storage_slot, encode_storage_value
from eth_sandbox.token import convert_to_raw, fetch_erc20_decimals

logger = logging.getLogger(__name__)


#: Contract level call failures that mean "the contract does not have this function".
#:
#: Transport level failures (connection errors, timeouts, HTTP errors, garbled replies)
#: are not part of this and are raised to the caller.
_probe_miss_exceptions = (BadFunctionCallOutput, ContractLogicError)


@dataclass(frozen=True)
class ProxyInfo:
    """Synthetix style ``ProxyERC20`` token."""

    #: The proxy address, as the token is known externally
    proxy: HexAddress

    #: Token implementation behind the proxy, from ``target()``
    target: HexAddress

    #: The contract holding balances, from ``tokenState()``
    token_state: HexAddress


@dataclass(frozen=True)
class Injected:
    """Balance was written."""

    #: Token address as requested
    token_address: HexAddress

    #: The contract which storage we wrote, differs from `token_address` for proxy tokens
    storage_address: HexAddress

    #: Whose balance was set
    account: HexAddress

    #: Storage key we wrote
    storage_key: HexStr

    #: Written balance in raw token units
    raw_amount: int

    @property
    def success(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return f"Balance of {self.account} set to {self.raw_amount} raw units of {self.token_address}"


@dataclass(frozen=True)
class NotInjectable:
    """Token storage layout is unknown, nothing was written."""

    #: Token address as requested
    token_address: HexAddress

    #: Chain we looked up
    chain_id: int

    @property
    def success(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return f"Token balance not changeable : {self.token_address} - {self.chain_id}"


#: Outcome of :py:func:`set_erc20_balance`
InjectionResult = Injected | NotInjectable


def probe_token_proxy(web3: Web3, token_address: HexAddress | str) -> ProxyInfo | None:
    """Check if a token is a Synthetix style proxy token.

    - Call ``target()`` on the token

    - Call ``tokenState()`` on the target

    :return:
        Proxy details if both calls succeed, ``None`` if the token does not implement them.

    :raise requests.exceptions.RequestException:
        Network failures are not treated as "not a proxy"
    """
    proxy = get_deployed_contract(web3, "ProxyERC20.json", token_address)
    try:
        target = proxy.functions.target().call()
        implementation = get_deployed_contract(web3, "ProxyERC20.json", target)
        token_state = implementation.functions.tokenState().call()
    except _probe_miss_exceptions as e:
        logger.debug("Token %s is not a proxy token: %s", token_address, e)
        return None

    logger.info("Token %s is a proxy token, target %s, balances held in %s", token_address, target, token_state)
    return ProxyInfo(
        proxy=Web3.to_checksum_address(token_address),
        target=target,
        token_state=token_state,
    )


def resolve_storage_address(web3: Web3, token_address: HexAddress | str) -> HexAddress:
    """Get the contract address where balances of a token are stored."""
    proxy_info = probe_token_proxy(web3, token_address)
    if proxy_info is not None:
        return proxy_info.token_state
    return Web3.to_checksum_address(token_address)


def set_erc20_balance(
    web3: Web3,
    chain_id: int,
    token_address: HexAddress | str,
    account: HexAddress | str,
    amount: Decimal | int | str,
    catalog: SlotLayoutCatalog | None = None,
) -> InjectionResult:
    """Set ERC-20 balance of any account in a sandbox.

    - Overwrites the balance storage slot with ``tenderly_setStorageAt``

    - Mines a block, so the new balance is visible

    - Total supply is not updated

    :param web3:
        Web3 connected to the sandbox

    :param chain_id:
        Chain id of the sandbox, used for storage layout lookup

    :param token_address:
        ERC-20 token as seen by users. Proxy tokens are resolved automatically.

    :param account:
        Whose balance to set

    :param amount:
        Human readable amount, e.g. ``Decimal("1.5")`` for 1.5 USDC.
        Scaled by the token decimals.

    :param catalog:
        Storage layout table. If not given use the bundled one.

    :return:
        :py:class:`Injected` or :py:class:`NotInjectable` if we do not know where the token keeps its balances.
    """
    assert token_address.startswith("0x"), f"Not an address: {token_address}"
    assert account.startswith("0x"), f"Not an address: {account}"

    if catalog is None:
        catalog = load_default_slot_catalog()

    storage_address = resolve_storage_address(web3, token_address)

    # Decimals come from the ERC-20 interface, not from the state contract
    decimals = fetch_erc20_decimals(web3, token_address)
    raw_amount = convert_to_raw(amount, decimals)

    layout = catalog.get(chain_id, storage_address)
    if layout is None:
        result = NotInjectable(token_address=token_address, chain_id=chain_id)
        logger.warning("%s", result.message)
        return result

    storage_key = calculate_balance_storage_slot(account, layout)

    logger.info(
        "Setting %s balance of %s to %s (%d raw), storage %s, slot %s",
        token_address,
        account,
        amount,
        raw_amount,
        storage_address,
        storage_key,
    )

    set_storage_at(web3, storage_address, storage_key, encode_storage_value(raw_amount))
    mine(web3)

    return Injected(
        token_address=token_address,
        storage_address=storage_address,
        account=account,
        storage_key=storage_key,
        raw_amount=raw_amount,
    )
