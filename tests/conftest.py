"""Shared fixtures.

Unit tests do not talk to Tenderly. Instead web3 is connected to
:py:class:`FakeSandboxProvider` that answers the handful of JSON-RPC methods
the sandbox code uses and records every request made.
"""

from typing import Any, Iterable

import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3
from web3.providers.base import BaseProvider

from eth_sandbox.chain_config import load_chain_configs


#: 32 zero bytes as a storage word
ZERO_WORD = "0x" + "00" * 32


class FakeSandboxProvider(BaseProvider):
    """In-memory stand-in for a Tenderly fork JSON-RPC.

    - ``eth_call`` results are set up with :py:meth:`mock_call`,
      unknown calls return empty data like calling an EOA

    - Storage and native balance writes are stored in dicts for inspection

    - Time moves only on ``evm_mine``
    """

    endpoint_uri = "https://rpc.tenderly.co/fork/7c3f9ee1-9f4d-4a3b-a2f0-000000000000"

    def __init__(self, chain_id: int = 1):
        super().__init__()
        self.chain_id = chain_id

        #: (method, params) of every request
        self.requests: list[tuple[str, Any]] = []

        #: (lowercase address, selector hex) -> ABI encoded result
        self.call_results: dict[tuple[str, str], str] = {}

        #: (lowercase address, slot) -> value
        self.storage: dict[tuple[str, str], str] = {}

        #: lowercase address -> wei
        self.native_balances: dict[str, int] = {}

        #: Transactions passed to eth_sendTransaction
        self.sent_transactions: list[dict] = []

        #: Status of all transaction receipts
        self.receipt_status = 1

        #: method -> error message, return JSON-RPC error for this method
        self.errors: dict[str, str] = {}

        #: method -> exception, raise on this method as a broken transport would
        self.failures: dict[str, Exception] = {}

        self.block_number = 20_000_000
        self.timestamp = 1_700_000_000
        self.time_offset = 0
        self.next_timestamp = None

    def is_connected(self, show_traceback: bool = False) -> bool:
        return True

    def mock_call(self, address: str, signature: str, output_types: Iterable[str] = (), values: Iterable[Any] = ()):
        """Set the return value of a contract view function.

        :param signature:
            E.g. ``decimals()``
        """
        selector = function_signature_to_4byte_selector(signature).hex()
        self.call_results[(address.lower(), selector)] = "0x" + encode(list(output_types), list(values)).hex()

    def get_methods(self) -> list[str]:
        return [method for method, params in self.requests]

    def get_eth_calls_to(self, address: str) -> list[dict]:
        return [params[0] for method, params in self.requests if method == "eth_call" and params[0]["to"].lower() == address.lower()]

    def make_request(self, method, params):
        self.requests.append((method, params))

        if method in self.failures:
            raise self.failures[method]

        if method in self.errors:
            return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": self.errors[method]}}

        handler = getattr(self, f"_{method}", None)
        if handler is None:
            return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": f"the method {method} does not exist/is not available"}}

        return {"jsonrpc": "2.0", "id": 1, "result": handler(*params)}

    def _get_block(self) -> dict:
        return {
            "number": hex(self.block_number),
            "hash": "0x" + self.block_number.to_bytes(32, "big").hex(),
            "parentHash": "0x" + (self.block_number - 1).to_bytes(32, "big").hex(),
            "timestamp": hex(self.timestamp),
            "baseFeePerGas": hex(10**9),
            "gasLimit": hex(30_000_000),
            "gasUsed": "0x0",
            "transactions": [],
        }

    def _eth_chainId(self):
        return hex(self.chain_id)

    def _eth_blockNumber(self):
        return hex(self.block_number)

    def _eth_getBlockByNumber(self, block_identifier, full_transactions=False):
        return self._get_block()

    def _eth_gasPrice(self):
        return hex(10**9)

    def _eth_maxPriorityFeePerGas(self):
        return hex(10**9)

    def _eth_feeHistory(self, block_count, newest_block, reward_percentiles=None):
        return {
            "oldestBlock": hex(self.block_number),
            "baseFeePerGas": [hex(10**9), hex(10**9)],
            "gasUsedRatio": [0.5],
            "reward": [[hex(10**9)]],
        }

    def _eth_estimateGas(self, tx, block_identifier="latest"):
        return hex(100_000)

    def _eth_getCode(self, address, block_identifier="latest"):
        return "0x"

    def _eth_call(self, tx, block_identifier="latest", *args):
        data = tx.get("data") or tx.get("input") or "0x"
        selector = data[2:10]
        return self.call_results.get((tx["to"].lower(), selector), "0x")

    def _eth_sendTransaction(self, tx):
        self.sent_transactions.append(tx)
        return "0x" + len(self.sent_transactions).to_bytes(32, "big").hex()

    def _eth_getTransactionReceipt(self, tx_hash):
        return {
            "transactionHash": tx_hash,
            "transactionIndex": "0x0",
            "blockHash": "0x" + self.block_number.to_bytes(32, "big").hex(),
            "blockNumber": hex(self.block_number),
            "status": hex(self.receipt_status),
            "gasUsed": hex(50_000),
            "cumulativeGasUsed": hex(50_000),
            "effectiveGasPrice": hex(10**9),
            "contractAddress": None,
            "logs": [],
        }

    def _tenderly_setStorageAt(self, address, slot, value):
        self.storage[(address.lower(), slot)] = value
        return ZERO_WORD

    def _eth_getBalance(self, address, block_identifier="latest"):
        return hex(self.native_balances.get(address.lower(), 0))

    def _tenderly_setBalance(self, addresses, amount):
        for address in addresses:
            self.native_balances[address.lower()] = int(amount, 16)
        return ZERO_WORD

    def _evm_increaseTime(self, seconds):
        self.time_offset += int(seconds, 16)
        return hex(self.time_offset)

    def _evm_setNextBlockTimestamp(self, timestamp):
        self.next_timestamp = int(timestamp, 16)
        return hex(self.next_timestamp)

    def _evm_mine(self):
        self.block_number += 1
        if self.next_timestamp is not None:
            self.timestamp = self.next_timestamp
        else:
            self.timestamp += self.time_offset
        self.time_offset = 0
        self.next_timestamp = None
        return "0x0"


@pytest.fixture()
def provider() -> FakeSandboxProvider:
    """Mainnet sandbox."""
    return FakeSandboxProvider(chain_id=1)


@pytest.fixture()
def web3(provider) -> Web3:
    return Web3(provider)


@pytest.fixture(scope="session")
def chain_configs():
    """Bundled chain configuration."""
    return load_chain_configs()
