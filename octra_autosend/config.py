from pydantic_settings import BaseSettings, SettingsConfigDict

μ = 1_000_000
MICRO = μ

OCTRASCAN_TX_URL = "https://octrascan.io/tx/"
DEFAULT_RPC = "http://localhost:8080"


class Config(BaseSettings):
    """Runtime settings. Every field can be set as OCTRA_<FIELD> in the environment or .env."""

    amount_per_tx: float = 0.1
    delay_between_tx: float = 3.0
    interval_between_batches: float = 24 * 60 * 60
    wallet_file: str = "wallet.json"
    targets_file: str = "targets.txt"
    explorer_url: str = OCTRASCAN_TX_URL
    encrypt_buffer_raw: int = 1_000_000
    encrypt_settle_seconds: float = 5.0
    private_probability: float = 0.5
    send_retries: int = 0
    # aiohttp ClientTimeout total, seconds
    request_timeout: float = 30.0

    model_config = SettingsConfigDict(
        env_prefix="OCTRA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )
