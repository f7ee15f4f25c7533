from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from netdial.core.transport.defaults import (
    DEFAULT_ACCEPT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_LISTEN_BACKLOG,
    DEFAULT_NO_DELAY,
    DEFAULT_PEER_CACHE_CAPACITY,
)
from netdial.core.transport.interfaces import TransportConfig


class NetdialSettings(BaseSettings):
    """netdial configuration settings, read from NETDIAL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NETDIAL_", env_file=".env", extra="ignore"
    )

    listen_backlog: int = Field(
        DEFAULT_LISTEN_BACKLOG,
        ge=0,
        description="Backlog passed to listen() for TCP listeners.",
    )
    accept_timeout: float | None = Field(
        DEFAULT_ACCEPT_TIMEOUT,
        description="Default seconds a TCP listener waits in accept(); unset blocks.",
    )
    connect_timeout: float | None = Field(
        DEFAULT_CONNECT_TIMEOUT,
        description="Seconds a TCP dial waits for the handshake; unset blocks.",
    )
    peer_cache_capacity: int = Field(
        DEFAULT_PEER_CACHE_CAPACITY,
        gt=0,
        description="Maximum number of resolved UDP peers kept per connection.",
    )
    no_delay: bool = Field(
        DEFAULT_NO_DELAY,
        description="Enable TCP_NODELAY on dialed and accepted TCP connections.",
    )
    log_level: str = Field("INFO", description="Minimum loguru level to emit.")
    log_debug_scopes: tuple[str, ...] = Field(
        (),
        description="Module prefixes that emit DEBUG logs regardless of log_level.",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper()

    def transport_config(self) -> TransportConfig:
        """Build the TransportConfig consumed by listeners and dialers."""
        return TransportConfig(
            listen_backlog=self.listen_backlog,
            accept_timeout=self.accept_timeout,
            connect_timeout=self.connect_timeout,
            peer_cache_capacity=self.peer_cache_capacity,
            no_delay=self.no_delay,
        )
