"""Tenderly configuration data"""

#: Tenderly REST API root
TENDERLY_API_URL = "https://api.tenderly.co/api/v1"

#: Fork JSON-RPC endpoints are ``{TENDERLY_FORK_RPC_URL}/{fork_id}``
TENDERLY_FORK_RPC_URL = "https://rpc.tenderly.co/fork"

#: Tenderly account slug used if ``TENDERLY_ACCOUNT`` is not set
DEFAULT_TENDERLY_ACCOUNT = "defisaver-v2"

#: Tenderly project slug used if ``TENDERLY_PROJECT`` is not set
DEFAULT_TENDERLY_PROJECT = "strategies"

#: Seconds to wait for a Tenderly API or fork RPC reply.
#:
#: Fork creation is the slowest call, usually a few seconds.
DEFAULT_REQUEST_TIMEOUT = 60.0

#: How much ETH the automation owner gets on a new sandbox
OWNER_TOP_UP_AMOUNT = 100

#: How much ETH each bot account gets on a new sandbox
BOT_TOP_UP_AMOUNT = 1000

#: BotAuth.addCaller() gas
ADD_CALLER_GAS_LIMIT = 800_000
