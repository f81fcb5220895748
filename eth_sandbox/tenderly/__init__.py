"""Tenderly fork provisioning API integration.

- `Tenderly <https://tenderly.co>`__ hosts mainnet forks with a JSON-RPC endpoint per fork
"""
