"""Core configuration settings for document discovery.

This module provides centralized configuration management for chaindocs-core,
handling the ledger endpoint, request pacing and cache location. Settings are
loaded from environment variables with .env file support via pydantic-settings.

Environment variables:
    CHAINDOCS_RPC_URL: Ledger JSON-RPC endpoint (defaults to Solana devnet)
    CHAINDOCS_THROTTLE_MAX_REQUESTS: Requests allowed per throttle window
    CHAINDOCS_THROTTLE_WINDOW: Throttle window length in seconds
    CHAINDOCS_CACHE_DIR: Directory for the local cache (empty means in-memory)
    CHAINDOCS_POLL_INTERVAL: Seconds between background polls

Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values

Example:
    >>> from chaindocs_core.settings import settings
    >>> print(settings.rpc_url)
    >>> settings.rpc_url = "http://localhost:8899"  # Raises error, settings are frozen

Note:
    Settings are loaded once at module import and frozen. The process must be
    restarted to pick up changes to environment variables or the .env file.
"""

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"
APP_TAG = "chaindocs"


class Settings(BaseSettings):
    """Configuration for ledger access, pacing and caching.

    Attributes:
        rpc_url: JSON-RPC endpoint of the ledger cluster.

        rpc_timeout: Per-request HTTP timeout in seconds.

        app_tag: Application tag written into every annotation payload.
                 Payloads with a different tag are ignored by discovery.

        memo_program_id: Address of the well-known annotation (memo) channel.

        throttle_max_requests: Maximum ledger reads inside one throttle window.

        throttle_window: Length of the sliding throttle window in seconds.

        cache_dir: Directory of the local key-value cache. Empty keeps the
                   cache in memory for the lifetime of the process.

        cache_key_prefix: Prefix for every cache key.

        poll_interval: Seconds between background poll_once calls.

        verify_base_url: Base URL used when building verification links.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAINDOCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Ledger
    rpc_url: str = DEVNET_RPC_URL
    rpc_timeout: float = 30.0
    app_tag: str = APP_TAG
    memo_program_id: str = MEMO_PROGRAM_ID

    # Request pacing
    throttle_max_requests: int = 8
    throttle_window: float = 1.0

    # Cache
    cache_dir: str = ""
    cache_key_prefix: str = APP_TAG

    # Polling and sharing
    poll_interval: float = 15.0
    verify_base_url: str = "http://localhost:3000"


@dataclass(frozen=True, slots=True)
class ScanLimits:
    """Pacing and size limits used by the ledger scan strategies.

    All delays are in seconds.
    """

    request_delay: float = 0.2
    verify_pause_every: int = 5
    max_issuers: int = 10
    max_txs_per_issuer: int = 50
    issuer_pause_every: int = 5
    channel_signature_limit: int = 30
    channel_process_limit: int = 20
    channel_delay: float = 0.4
    channel_pause_every: int = 3
    throttled_cooldown: float = 2.0

    def __post_init__(self) -> None:
        if min(self.request_delay, self.channel_delay, self.throttled_cooldown) < 0:
            raise ValueError("scan delays must be >= 0")
        for name in ("verify_pause_every", "issuer_pause_every", "channel_pause_every"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")


# Create a single, importable instance of the settings
settings = Settings()
