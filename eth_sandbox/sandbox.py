"""Sandbox lifecycle.

A sandbox is a Tenderly fork of a live chain. Creating one goes through these steps:

1. Provision a fork through Tenderly API
2. Top up the automation owner account with ETH
3. For each bot account: top up with ETH, add to ``BotAuth`` callers

Each step is a separate external call, done one after another.
Nothing is retried and nothing is rolled back: if the third bot fails,
the first two stay funded and approved, and the error tells which bot failed.

Example:

.. code-block:: python

    api = TenderlyAPI.from_environment()
    manager = SandboxManager(api)
    sandbox = manager.create_sandbox(1, bot_accounts=["0x..."])

    web3 = sandbox.create_web3()
    set_erc20_balance(web3, sandbox.chain_id, USDC, user, Decimal(1000))
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from eth_account import Account
from eth_typing import HexAddress
from web3 import HTTPProvider, Web3

from eth_sandbox.bot_auth import add_bot_caller
from eth_sandbox.chain import get_chain_name
from eth_sandbox.chain_config import ChainConfig, get_chain_config, load_chain_configs
from eth_sandbox.tenderly.api import ProvisioningFailure, TenderlyAPI
from eth_sandbox.tenderly.config import (
    BOT_TOP_UP_AMOUNT,
    DEFAULT_REQUEST_TIMEOUT,
    OWNER_TOP_UP_AMOUNT,
    TENDERLY_FORK_RPC_URL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sandbox:
    """Handle to a forked chain.

    Only identifies the fork. Any state changes go through the fork JSON-RPC.
    """

    #: Tenderly fork UUID
    sandbox_id: str

    #: Chain id of the forked chain
    chain_id: int

    #: Block number the fork was made at, if known
    block_number: int | None = None

    @property
    def rpc_endpoint(self) -> str:
        """JSON-RPC URL of the fork.

        .. warning::

            Anyone knowing this URL can modify the fork.
        """
        return f"{TENDERLY_FORK_RPC_URL}/{self.sandbox_id}"

    def create_web3(self, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> Web3:
        """Create a Web3 connection to this sandbox.

        :param timeout:
            JSON-RPC request timeout, seconds
        """
        return Web3(HTTPProvider(self.rpc_endpoint, request_kwargs={"timeout": timeout}))


#: Creates Web3 connection for a sandbox
Web3Factory = Callable[[Sandbox], Web3]


def create_sandbox_account() -> HexAddress:
    """Generate a fresh random address for a test user."""
    return Account.create().address


class SandboxManager:
    """Create, clone and prepare sandboxes.

    Stateless: Tenderly API knows the forks, we do not keep records.
    """

    def __init__(
        self,
        api: TenderlyAPI,
        chain_configs: Mapping[int, ChainConfig] | None = None,
        owner_top_up: int = OWNER_TOP_UP_AMOUNT,
        bot_top_up: int = BOT_TOP_UP_AMOUNT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        web3_factory: Web3Factory | None = None,
    ):
        """

        :param api:
            Tenderly API client

        :param chain_configs:
            Per-chain owner and registry addresses. Default to the bundled config.

        :param owner_top_up:
            ETH given to the owner account

        :param bot_top_up:
            ETH given to each bot account

        :param request_timeout:
            Sandbox JSON-RPC timeout

        :param web3_factory:
            Override how we connect to a sandbox JSON-RPC
        """
        self.api = api
        self.chain_configs = chain_configs if chain_configs is not None else load_chain_configs()
        self.owner_top_up = owner_top_up
        self.bot_top_up = bot_top_up
        self.request_timeout = request_timeout
        self.web3_factory = web3_factory or (lambda sandbox: sandbox.create_web3(self.request_timeout))

    def __repr__(self):
        return f"<SandboxManager {self.api} chains {list(self.chain_configs.keys())}>"

    def get_chain_config(self, chain_id: int) -> ChainConfig:
        return get_chain_config(chain_id, self.chain_configs)

    def create_sandbox(
        self,
        chain_id: int,
        bot_accounts: Iterable[HexAddress | str] = (),
        block_number: int | None = None,
    ) -> Sandbox:
        """Fork a chain and prepare it for automation testing.

        :param chain_id:
            Which chain to fork

        :param bot_accounts:
            Accounts to fund and approve as bot callers

        :param block_number:
            Fork at this block. Default to the latest.

        :raise ConfigurationError:
            The chain is not supported. Raised before a fork is created.
        """
        # Fail before we create a fork we cannot prepare
        self.get_chain_config(chain_id)

        fork = self.api.create_fork(chain_id, block_number=block_number)
        sandbox = Sandbox(sandbox_id=fork.fork_id, chain_id=chain_id, block_number=fork.block_number)
        logger.info("Provisioned sandbox %s on %s", sandbox.sandbox_id, get_chain_name(chain_id))

        self.prepare_sandbox(sandbox, bot_accounts)
        return sandbox

    def clone_sandbox(
        self,
        source_sandbox_id: str,
        bot_accounts: Iterable[HexAddress | str] = (),
    ) -> Sandbox:
        """Copy an existing sandbox, with its state, and prepare the copy.

        The copy has the chain id of the source.
        """
        fork = self.api.clone_fork(source_sandbox_id)

        chain_id = fork.chain_id
        if chain_id is None:
            chain_id = self.api.fetch_chain_id(fork.fork_id)

        sandbox = Sandbox(sandbox_id=fork.fork_id, chain_id=chain_id, block_number=fork.block_number)
        logger.info("Cloned sandbox %s to %s on %s", source_sandbox_id, sandbox.sandbox_id, get_chain_name(chain_id))

        self.prepare_sandbox(sandbox, bot_accounts)
        return sandbox

    def fetch_chain_id(self, sandbox_id: str) -> int:
        """Ask Tenderly which chain a sandbox forks."""
        return self.api.fetch_chain_id(sandbox_id)

    def get_sandbox(self, sandbox_id: str) -> Sandbox:
        """Get a handle to an existing sandbox when we only know its id."""
        return Sandbox(sandbox_id=sandbox_id, chain_id=self.fetch_chain_id(sandbox_id))

    def prepare_sandbox(self, sandbox: Sandbox, bot_accounts: Iterable[HexAddress | str] = ()):
        """Fund the owner, fund and approve bots."""
        self.top_up_owner(sandbox)
        self.set_up_bot_accounts(sandbox, bot_accounts)
        logger.info("Sandbox %s ready", sandbox.sandbox_id)

    def top_up_account(self, sandbox: Sandbox, address: HexAddress | str, amount: int):
        """Give native tokens to an account.

        :param amount:
            Whole ETH
        """
        self.api.credit_native_balance(sandbox.sandbox_id, [address], amount)

    def top_up_owner(self, sandbox: Sandbox):
        """Fund the automation owner so it can pay for ``addCaller()``."""
        chain_config = self.get_chain_config(sandbox.chain_id)
        self.top_up_account(sandbox, chain_config.owner, self.owner_top_up)

    def set_up_bot_accounts(self, sandbox: Sandbox, bot_accounts: Iterable[HexAddress | str]):
        """Fund and approve bot accounts, one by one.

        :raise AuthorisationFailure:
            For the first bot we could not approve. Bots before it stay approved.

        :raise ProvisioningFailure:
            For the first bot we could not fund, with `bot_address` set.
        """
        bot_accounts = list(bot_accounts)
        if not bot_accounts:
            return

        chain_config = self.get_chain_config(sandbox.chain_id)
        web3 = self.web3_factory(sandbox)

        for bot_address in bot_accounts:
            try:
                self.top_up_account(sandbox, bot_address, self.bot_top_up)
            except ProvisioningFailure as e:
                raise ProvisioningFailure(f"Could not fund bot {bot_address} on sandbox {sandbox.sandbox_id}: {e}", bot_address=bot_address) from e
            add_bot_caller(web3, chain_config, bot_address)

        logger.info("Sandbox %s has %d bot accounts set up", sandbox.sandbox_id, len(bot_accounts))
