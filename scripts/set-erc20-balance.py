"""Give ERC-20 tokens to an account on a sandbox.

If ``ACCOUNT`` is not given, a new random account is created.

Example:

.. code-block:: shell

    export TENDERLY_ACCESS_KEY=...
    export SANDBOX_ID=7c3f9ee1-...
    TOKEN=0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48 AMOUNT=10000 python scripts/set-erc20-balance.py
"""

import os
import sys
from decimal import Decimal

from eth_sandbox.balance import set_erc20_balance
from eth_sandbox.sandbox import SandboxManager, create_sandbox_account
from eth_sandbox.tenderly.api import TenderlyAPI
from eth_sandbox.token import convert_to_decimals, get_erc20_contract
from eth_sandbox.utils import addr, setup_console_logging

setup_console_logging()

sandbox_id = os.environ["SANDBOX_ID"]
token_address = addr(os.environ["TOKEN"])
amount = Decimal(os.environ["AMOUNT"])
account = addr(os.environ.get("ACCOUNT") or create_sandbox_account())

manager = SandboxManager(TenderlyAPI.from_environment())
sandbox = manager.get_sandbox(sandbox_id)
web3 = sandbox.create_web3()

result = set_erc20_balance(web3, sandbox.chain_id, token_address, account, amount)
if not result.success:
    print(result.message)
    sys.exit(1)

token = get_erc20_contract(web3, token_address)
symbol = token.functions.symbol().call()
decimals = token.functions.decimals().call()
balance = token.functions.balanceOf(account).call()

print(f"Account {account} now has {convert_to_decimals(balance, decimals)} {symbol}")
