"""Run against a real Tenderly fork.

- Needs ``TENDERLY_ACCESS_KEY``, ``TENDERLY_ACCOUNT`` and ``TENDERLY_PROJECT``

- Creates a fork that is not deleted afterwards
"""

import os
from decimal import Decimal

import pytest

from eth_sandbox.balance import set_erc20_balance
from eth_sandbox.sandbox import SandboxManager, create_sandbox_account
from eth_sandbox.tenderly.api import TenderlyAPI
from eth_sandbox.time_travel import advance_time
from eth_sandbox.token import get_erc20_contract

TENDERLY_ACCESS_KEY = os.environ.get("TENDERLY_ACCESS_KEY")

pytestmark = pytest.mark.skipif(not TENDERLY_ACCESS_KEY, reason="TENDERLY_ACCESS_KEY needed to run these tests")

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


@pytest.fixture(scope="module")
def sandbox():
    manager = SandboxManager(TenderlyAPI.from_environment())
    return manager.create_sandbox(1)


def test_live_usdc_balance(sandbox):
    web3 = sandbox.create_web3()
    assert web3.eth.chain_id == 1

    user = create_sandbox_account()
    result = set_erc20_balance(web3, sandbox.chain_id, USDC, user, Decimal(10_000))
    assert result.success, result.message

    usdc = get_erc20_contract(web3, USDC)
    assert usdc.functions.balanceOf(user).call() == 10_000 * 10**6


def test_live_time_travel(sandbox):
    web3 = sandbox.create_web3()
    travel = advance_time(web3, 24 * 3600)
    assert travel.elapsed >= 24 * 3600
