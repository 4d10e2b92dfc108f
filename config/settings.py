from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Clearnode (defaults point at the public sandbox)
    CLEARNODE_WS_URL: str = "wss://clearnet-sandbox.yellow.com/ws"

    # Chain
    RPC_URL: str = "https://1rpc.io/sepolia"
    CHAIN_ID: int = 11155111
    CUSTODY_ADDRESS: str | None = None      # overrides the per-chain default
    ADJUDICATOR_ADDRESS: str | None = None  # overrides the per-chain default

    # Wallet: only the CLI runner needs it
    WALLET_PRIVATE_KEY: str | None = None

    # Session auth
    AUTH_APPLICATION: str = "Predicta"
    AUTH_SCOPE: str = "predicta.app"
    SESSION_EXPIRES_IN_SECONDS: int = 3600

    # Timeouts (seconds). Every network wait is bounded by one of these.
    CONNECT_TIMEOUT_SECONDS: float = 10.0
    AUTH_STEP_TIMEOUT_SECONDS: float = 30.0
    PROTOCOL_TIMEOUT_SECONDS: float = 30.0
    CONFIRMATION_TIMEOUT_SECONDS: float = 180.0

    # Custody balance polling while funding a channel: 30 x 2s = 60s
    FUNDING_POLL_MAX_ATTEMPTS: int = 30
    FUNDING_POLL_INTERVAL_SECONDS: float = 2.0

    # Pricing
    DEFAULT_LIQUIDITY_PARAM: float = 100.0

    # App
    APP_NAME: str = "Predicta Settlement"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev


settings = Settings()
