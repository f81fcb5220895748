"""ERC-20 token reads needed by balance injection."""

import logging
from decimal import Decimal, localcontext

from eth_typing import HexAddress
from web3 import Web3
from web3.contract import Contract

from eth_sandbox.abi import get_deployed_contract

logger = logging.getLogger(__name__)


def get_erc20_contract(
    web3: Web3,
    address: HexAddress | str,
    contract_name="ERC20.json",
) -> Contract:
    """Wrap address as ERC-20 standard interface."""
    return get_deployed_contract(web3, contract_name, address)


def fetch_erc20_decimals(web3: Web3, token_address: HexAddress | str) -> int:
    """Read ``decimals()`` of a token.

    Any RPC error is propagated.
    """
    decimals = get_erc20_contract(web3, token_address).functions.decimals().call()
    logger.debug("Token %s has %d decimals", token_address, decimals)
    return decimals


def convert_to_raw(decimal_amount: Decimal | int | str, decimals: int) -> int:
    """Convert decimalised token amount to raw uint256.

    The conversion is exact. Floats are refused, as ``0.1`` in binary floating point
    is not ``0.1`` and the result would be off by some wei.

    Example:

    .. code-block:: python

        # Convert 1.0 USDC to raw unit with 6 decimals
        assert convert_to_raw(1, 6) == 1_000_000

    :param decimal_amount:
        Human readable amount

    :param decimals:
        Token decimals

    :raise ValueError:
        If the amount has more fractional digits than the token supports
    """
    assert not isinstance(decimal_amount, float), f"Use Decimal instead of float: {decimal_amount}"
    assert type(decimals) == int and decimals >= 0, f"Bad decimals: {decimals}"

    with localcontext() as ctx:
        # Enough digits for any uint256
        ctx.prec = 80
        raw = Decimal(decimal_amount).scaleb(decimals)
        if raw != raw.to_integral_value():
            raise ValueError(f"Amount {decimal_amount} has more precision than {decimals} decimals")
        return int(raw)


def convert_to_decimals(raw_amount: int, decimals: int) -> Decimal:
    """Convert raw token units to decimals."""
    assert type(raw_amount) == int, f"Got {type(raw_amount)}, expected int: {raw_amount}"
    return Decimal(raw_amount).scaleb(-decimals)
