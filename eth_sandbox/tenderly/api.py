"""Tenderly fork provisioning REST API.

- Create and clone forks, read fork metadata, top up native balances

- `API reference <https://docs.tenderly.co/reference/api>`__

The API is the source of truth for forks: we do not store anything locally.
Calls are not retried, any failure is raised as :py:class:`ProvisioningFailure`.
"""

import logging
import os
from dataclasses import dataclass
from pprint import pformat
from typing import Iterable

import requests
from eth_typing import HexAddress
from requests import HTTPError, RequestException

from eth_sandbox.tenderly.config import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TENDERLY_ACCOUNT,
    DEFAULT_TENDERLY_PROJECT,
    TENDERLY_API_URL,
)

logger = logging.getLogger(__name__)


class ProvisioningFailure(Exception):
    """Tenderly API returned an error or a reply we could not understand.

    When funding a bot account failed, `bot_address` tells which one.
    """

    def __init__(self, msg: str, bot_address: HexAddress | str | None = None):
        super().__init__(msg)
        self.bot_address = bot_address


@dataclass(frozen=True)
class ForkInfo:
    """Fork metadata from Tenderly API."""

    #: Fork UUID
    fork_id: str

    #: Chain id of the forked chain
    chain_id: int | None

    #: Block number the fork was made at
    block_number: int | None = None

    @staticmethod
    def parse(data: dict) -> "ForkInfo":
        """Parse ``simulation_fork`` part of the API reply."""
        try:
            fork = data["simulation_fork"]
            fork_id = fork["id"]
            network_id = fork.get("network_id")
            block_number = fork.get("block_number")
            return ForkInfo(
                fork_id=str(fork_id),
                chain_id=int(network_id) if network_id is not None else None,
                block_number=int(block_number) if block_number is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProvisioningFailure(f"Malformed fork reply from Tenderly:\n{pformat(data)}") from e


class TenderlyAPI:
    """Tenderly REST API client.

    Example:

    .. code-block:: python

        api = TenderlyAPI.from_environment()
        fork = api.create_fork(1)
        api.credit_native_balance(fork.fork_id, ["0x..."], 100)
    """

    def __init__(
        self,
        access_key: str,
        account: str = DEFAULT_TENDERLY_ACCOUNT,
        project: str = DEFAULT_TENDERLY_PROJECT,
        api_url: str = TENDERLY_API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """

        :param access_key:
            Tenderly API access key

        :param account:
            Tenderly account slug

        :param project:
            Tenderly project slug

        :param timeout:
            Request timeout in seconds for every API call

        :param session:
            Use a custom HTTP session
        """
        assert access_key, "Tenderly access key missing"
        self.account = account
        self.project = project
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "X-Access-Key": access_key,
            }
        )

    def __repr__(self):
        return f"<TenderlyAPI {self.account}/{self.project}>"

    @staticmethod
    def from_environment() -> "TenderlyAPI":
        """Create API client from environment variables.

        - ``TENDERLY_ACCESS_KEY`` (required)
        - ``TENDERLY_ACCOUNT``
        - ``TENDERLY_PROJECT``
        """
        access_key = os.environ.get("TENDERLY_ACCESS_KEY")
        if not access_key:
            raise ProvisioningFailure("TENDERLY_ACCESS_KEY environment variable missing")
        return TenderlyAPI(
            access_key,
            account=os.environ.get("TENDERLY_ACCOUNT", DEFAULT_TENDERLY_ACCOUNT),
            project=os.environ.get("TENDERLY_PROJECT", DEFAULT_TENDERLY_PROJECT),
        )

    @property
    def project_url(self) -> str:
        return f"{self.api_url}/account/{self.account}/project/{self.project}"

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        """Make an API call.

        :raise ProvisioningFailure:
            On HTTP errors, timeouts and non-JSON replies
        """
        url = f"{self.project_url}/{path}"
        logger.debug("Tenderly %s %s %s", method, path, payload)
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except HTTPError as e:
            raise ProvisioningFailure(f"Tenderly API error on {method} {path}, code {e.response.status_code}: {e.response.text}\nPayload was:\n{pformat(payload)}") from e
        except RequestException as e:
            raise ProvisioningFailure(f"Tenderly API {method} {path} failed: {e}") from e

        if not resp.content:
            return {}

        try:
            return resp.json()
        except ValueError as e:
            raise ProvisioningFailure(f"Tenderly API {method} {path} did not return JSON: {resp.text[0:200]}") from e

    def create_fork(self, chain_id: int, block_number: int | None = None) -> ForkInfo:
        """Create a new fork of a chain.

        :param block_number:
            Fork at a historical block. If not given fork at the latest block.
        """
        assert type(chain_id) == int, f"Chain id must be int: {chain_id}"
        payload = {"network_id": chain_id}
        if block_number is not None:
            payload["block_number"] = block_number

        info = ForkInfo.parse(self._request("POST", "fork", payload))
        if info.chain_id is None:
            info = ForkInfo(info.fork_id, chain_id, info.block_number)
        logger.info("Created Tenderly fork %s of chain %d at block %s", info.fork_id, chain_id, info.block_number)
        return info

    def clone_fork(self, fork_id: str) -> ForkInfo:
        """Make a copy of an existing fork, including its state."""
        info = ForkInfo.parse(self._request("POST", "clone-fork", {"fork_id": fork_id}))
        logger.info("Cloned Tenderly fork %s to %s", fork_id, info.fork_id)
        return info

    def fetch_fork(self, fork_id: str) -> ForkInfo:
        """Read fork metadata."""
        return ForkInfo.parse(self._request("GET", f"fork/{fork_id}"))

    def fetch_chain_id(self, fork_id: str) -> int:
        """Read the chain id of a fork.

        :raise ProvisioningFailure:
            The reply does not tell the chain id
        """
        info = self.fetch_fork(fork_id)
        if info.chain_id is None:
            raise ProvisioningFailure(f"Tenderly did not return network_id for fork {fork_id}")
        return info.chain_id

    def credit_native_balance(self, fork_id: str, addresses: Iterable[HexAddress | str], amount: int):
        """Set the native token balance of accounts on a fork.

        :param amount:
            Amount in whole ETH (or other native token)
        """
        addresses = list(addresses)
        assert type(amount) == int and amount >= 0, f"Bad amount: {amount}"
        logger.info("Topping up %s on fork %s with %d native tokens", addresses, fork_id, amount)
        self._request("POST", f"fork/{fork_id}/balance", {"accounts": addresses, "amount": amount})
