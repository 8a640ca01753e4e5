"""
Repository defaults for the vault fill relay.

Environment variables take precedence over these values (see
``services.relay.settings.RelaySettings.from_env``). Keep secrets such as the
webhook URL out of this file and supply them through the environment.
"""

# Parent vault whose child accounts are watched.
VAULT_ADDRESS = "0xdfc24b077bc1425ad1dea75bcb6f8158e10df303"

# "mainnet" or "testnet"; selects the default REST and websocket endpoints.
HYPERLIQUID_NETWORK = "mainnet"

# Delivery defaults: "batched" posts one message per flush tick, "immediate"
# posts one message per fill and paces between posts.
DELIVERY_MODE = "batched"

# Scheduler defaults (seconds)
REFRESH_INTERVAL = 30
FLUSH_INTERVAL = 1
PACING_INTERVAL = 5

HTTP_TIMEOUT = 10.0
LOG_LEVEL = "INFO"
