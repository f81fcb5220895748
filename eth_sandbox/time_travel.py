"""Move sandbox time forward.

Many contracts have time locks, cooldowns or interest accrual.
On a sandbox we can skip the waiting by increasing the chain clock and mining a block.
"""

import datetime
import logging
from dataclasses import dataclass

from web3 import Web3

from eth_sandbox.provider.tenderly import increase_time, mine, set_next_block_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeTravel:
    """Timestamps of the latest block before and after the time change."""

    #: UNIX timestamp before
    old_timestamp: int

    #: UNIX timestamp after
    new_timestamp: int

    @property
    def elapsed(self) -> int:
        """How many seconds we moved forward."""
        return self.new_timestamp - self.old_timestamp

    def get_new_time(self) -> datetime.datetime:
        """Naive UTC datetime of the new latest block."""
        return datetime.datetime.fromtimestamp(self.new_timestamp, tz=datetime.timezone.utc).replace(tzinfo=None)


def _fetch_latest_timestamp(web3: Web3) -> int:
    return web3.eth.get_block("latest")["timestamp"]


def advance_time(web3: Web3, seconds: int) -> TimeTravel:
    """Move the sandbox clock forward and mine a block.

    Example:

    .. code-block:: python

        # Skip one week
        travel = advance_time(web3, 7 * 24 * 3600)
        print(f"Sandbox time is now {travel.get_new_time()}")

    :param web3:
        Web3 connected to the sandbox

    :param seconds:
        How many seconds to move forward
    """
    assert type(seconds) == int, f"Seconds must be int, got {type(seconds)}"
    if seconds < 0:
        raise ValueError(f"Cannot move time backwards: {seconds}")

    old_timestamp = _fetch_latest_timestamp(web3)
    increase_time(web3, seconds)
    mine(web3)
    new_timestamp = _fetch_latest_timestamp(web3)

    logger.info("Time travel %d seconds, block timestamp %d -> %d", seconds, old_timestamp, new_timestamp)
    return TimeTravel(old_timestamp, new_timestamp)


def set_time(web3: Web3, timestamp: int) -> TimeTravel:
    """Mine the next block at a given timestamp.

    :param timestamp:
        UNIX timestamp, must be after the latest block
    """
    assert type(timestamp) == int, f"Timestamp must be int, got {type(timestamp)}"

    old_timestamp = _fetch_latest_timestamp(web3)
    if timestamp <= old_timestamp:
        raise ValueError(f"Timestamp {timestamp} is not after the latest block timestamp {old_timestamp}")

    set_next_block_timestamp(web3, timestamp)
    mine(web3)
    new_timestamp = _fetch_latest_timestamp(web3)

    logger.info("Block timestamp set %d -> %d", old_timestamp, new_timestamp)
    return TimeTravel(old_timestamp, new_timestamp)
