"""Chain specific naming.

Tenderly forks copy the chain id of the forked chain, so we can
look up human readable names for logging.
"""

#: Manually maintained shorthand names for different EVM chains
CHAIN_NAMES = {
    1: "Ethereum",
    10: "Optimism",
    56: "Binance",
    100: "Gnosis",
    137: "Polygon",
    8453: "Base",
    42161: "Arbitrum",
    43114: "Avalanche",
    59144: "Linea",
}


def get_chain_name(chain_id: int) -> str:
    """Get chain name.

    Unknown chains are named by their id.
    """
    assert type(chain_id) == int, f"Chain id must be int, got {type(chain_id)}: {chain_id}"
    name = CHAIN_NAMES.get(chain_id)
    if name:
        return name
    return f"Unknown chain {chain_id}"
