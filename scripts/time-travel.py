"""Move sandbox time forward.

Example:

.. code-block:: shell

    # Skip one day
    export TENDERLY_ACCESS_KEY=...
    SANDBOX_ID=7c3f9ee1-... SECONDS=86400 python scripts/time-travel.py
"""

import os

from eth_sandbox.chain import get_chain_name
from eth_sandbox.sandbox import SandboxManager
from eth_sandbox.tenderly.api import TenderlyAPI
from eth_sandbox.time_travel import advance_time
from eth_sandbox.utils import setup_console_logging

setup_console_logging()

sandbox_id = os.environ["SANDBOX_ID"]
seconds = int(os.environ.get("SECONDS", "86400"))

manager = SandboxManager(TenderlyAPI.from_environment())
sandbox = manager.get_sandbox(sandbox_id)
web3 = sandbox.create_web3()
travel = advance_time(web3, seconds)

print(f"Sandbox on {get_chain_name(sandbox.chain_id)} moved {travel.elapsed:,} seconds forward, block time is now {travel.get_new_time()} UTC")
