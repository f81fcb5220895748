"""Gnosis Safe manipulation on a sandbox.

Lowering the signing threshold of a real multisig to one lets us
execute Safe transactions on a fork with a single impersonated owner.
"""

import logging

from eth_typing import HexAddress
from web3 import Web3

from eth_sandbox.abi import get_deployed_contract
from eth_sandbox.provider.tenderly import mine, set_storage_at
from eth_sandbox.storage_slot import encode_storage_value

logger = logging.getLogger(__name__)


#: ``uint256 threshold`` storage slot in Safe 1.x ``OwnerManager``
SAFE_THRESHOLD_SLOT = 4


def set_safe_threshold(web3: Web3, safe_address: HexAddress | str, threshold: int) -> int:
    """Overwrite the multisig threshold of a Safe.

    :param safe_address:
        Safe proxy address

    :param threshold:
        New number of required signatures

    :return:
        Threshold as read back from the Safe
    """
    assert type(threshold) == int and threshold > 0, f"Bad threshold: {threshold}"

    set_storage_at(web3, safe_address, encode_storage_value(SAFE_THRESHOLD_SLOT), encode_storage_value(threshold))
    mine(web3)

    safe = get_deployed_contract(web3, "GnosisSafe.json", safe_address)
    new_threshold = safe.functions.getThreshold().call()
    logger.info("Safe %s threshold is now %d", safe_address, new_threshold)
    return new_threshold
