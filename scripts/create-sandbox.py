"""Create a sandbox for automation testing.

- Forks a chain on Tenderly, or clones an existing sandbox

- Funds the automation owner and the given bot accounts, approves bots in ``BotAuth``

Example:

.. code-block:: shell

    export TENDERLY_ACCESS_KEY=...
    CHAIN_ID=10 BOT_ACCOUNTS=0x...,0x... python scripts/create-sandbox.py

Clone an existing sandbox:

.. code-block:: shell

    SOURCE_SANDBOX_ID=7c3f9ee1-... python scripts/create-sandbox.py
"""

import logging
import os

from eth_sandbox.chain import get_chain_name
from eth_sandbox.sandbox import SandboxManager
from eth_sandbox.tenderly.api import TenderlyAPI
from eth_sandbox.utils import addr, get_url_domain, setup_console_logging

setup_console_logging(default_log_level="info")

logger = logging.getLogger(__name__)

bot_accounts = [addr(a.strip()) for a in os.environ.get("BOT_ACCOUNTS", "").split(",") if a.strip()]
source_sandbox_id = os.environ.get("SOURCE_SANDBOX_ID")

manager = SandboxManager(TenderlyAPI.from_environment())

if source_sandbox_id:
    sandbox = manager.clone_sandbox(source_sandbox_id, bot_accounts=bot_accounts)
else:
    chain_id = int(os.environ.get("CHAIN_ID", "1"))
    block_number = os.environ.get("BLOCK_NUMBER")
    sandbox = manager.create_sandbox(
        chain_id,
        bot_accounts=bot_accounts,
        block_number=int(block_number) if block_number else None,
    )

logger.info("Sandbox RPC is at %s", get_url_domain(sandbox.rpc_endpoint))
print(f"Sandbox {sandbox.sandbox_id} on {get_chain_name(sandbox.chain_id)} is ready with {len(bot_accounts)} bots")
print(f"RPC endpoint: {sandbox.rpc_endpoint}")
