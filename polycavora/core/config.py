"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, SecretStr, field_validator, model_validator

_settings: SDKConfig | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

DEFAULT_META_BASE_URL = "https://gamma-api.polymarket.com"
DEFAULT_WS_BASE_URL = "wss://ws-subscriptions-clob.polymarket.com/ws/market"
DEFAULT_CLOB_HOST = "https://clob.polymarket.com"
DEFAULT_RELAYER_URL = "https://relayer-v2.polymarket.com"
POLYGON_CHAIN_ID = 137

# Methods an external signer must provide for order signing and CLOB auth
WALLET_SIGNER_METHODS = ("address", "sign")
# Extra method the relayer calls to sign Safe and proxy transactions
RELAY_SIGNER_METHODS = ("sign_eip712_struct_hash",)


def _missing_methods(obj: Any, names: tuple[str, ...]) -> list[str]:
    return [name for name in names if not callable(getattr(obj, name, None))]


class BackendAuth(BaseModel):
    """Server-side credentials: the SDK signs with a raw private key."""

    private_key: SecretStr


class WalletAuth(BaseModel):
    """Frontend credentials: an externally supplied wallet signer.

    ``signer`` must expose ``address()`` returning the checksummed address
    and ``sign(message_hash)`` returning a hex signature of a raw EIP-712
    hash (no message prefix). The SDK adapts it to the order and CLOB auth
    signing paths. For the relayer it must also provide
    ``sign_eip712_struct_hash(message_hash)``, which signs the hash with the
    EIP-191 personal-message prefix; Safe deployment uses plain ``sign``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    signer: Any
    funder: str | None = None
    signature_type: int | None = None

    @field_validator("signer")
    @classmethod
    def _check_signer(cls, signer: Any) -> Any:
        missing = _missing_methods(signer, WALLET_SIGNER_METHODS)
        if missing:
            raise ValueError(f"wallet signer is missing method(s): {', '.join(missing)}")
        return signer


class ApiCredentials(BaseModel):
    """L2 CLOB API credentials. Derived from the signer when omitted."""

    api_key: str
    api_secret: SecretStr
    api_passphrase: SecretStr


class BuilderConfig(BaseModel):
    """Builder attribution credentials attached to placed orders."""

    api_key: str
    api_secret: SecretStr
    api_passphrase: SecretStr


class _AuthenticatedConfig(BaseModel):
    backend: BackendAuth | None = None
    wallet: WalletAuth | None = None

    @model_validator(mode="after")
    def _one_auth_mode(self) -> _AuthenticatedConfig:
        if (self.backend is None) == (self.wallet is None):
            raise ValueError("exactly one of 'backend' or 'wallet' must be provided")
        return self


class TradingConfig(_AuthenticatedConfig):
    """Order trading configuration."""

    chain_id: int = POLYGON_CHAIN_ID
    host: str = DEFAULT_CLOB_HOST
    api_credentials: ApiCredentials | None = None
    builder: BuilderConfig | None = None


class RelayerConfig(_AuthenticatedConfig):
    """Gasless relayer configuration."""

    chain_id: int = POLYGON_CHAIN_ID
    relayer_url: str = DEFAULT_RELAYER_URL
    builder: BuilderConfig | None = None

    @model_validator(mode="after")
    def _relay_signer(self) -> RelayerConfig:
        if self.wallet is not None:
            missing = _missing_methods(self.wallet.signer, RELAY_SIGNER_METHODS)
            if missing:
                raise ValueError(
                    f"relayer wallet signer is missing method(s): {', '.join(missing)}"
                )
        return self


class RetryConfig(BaseModel):
    """Exponential backoff policy for REST calls."""

    max_attempts: int = 3
    base_delay_secs: float = 0.25
    max_delay_secs: float = 4.0
    backoff_factor: float = 2.0


class HttpConfig(BaseModel):
    """HTTP client configuration."""

    timeout_secs: float = 10.0


class StreamConfig(BaseModel):
    """WebSocket stream configuration."""

    ping_interval_secs: float = 10.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class SDKConfig(BaseModel):
    """Root settings container."""

    meta_base_url: str = DEFAULT_META_BASE_URL
    ws_base_url: str = DEFAULT_WS_BASE_URL
    debug: bool = False
    trading: TradingConfig | None = None
    relayer: RelayerConfig | None = None
    retry: RetryConfig = RetryConfig()
    http: HttpConfig = HttpConfig()
    stream: StreamConfig = StreamConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> SDKConfig:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed SDKConfig instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = SDKConfig(**data)
    return _settings


def get_settings() -> SDKConfig:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
