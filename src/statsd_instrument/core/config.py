from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from statsd_instrument.errors import ConfigurationError

PRODUCTION = "production"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8125


class Dialect(str, Enum):
    """Wire-format variant understood by the receiving daemon."""

    STATSD = "statsd"
    STATSITE = "statsite"
    DATADOG = "datadog"

    @classmethod
    def parse(cls, value: "Dialect | str") -> "Dialect":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lstrip(":").lower())
        except ValueError:
            raise ConfigurationError(f"unknown StatsD implementation: {value!r}") from None


def parse_port(value: object) -> int:
    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigurationError(f"invalid StatsD port: {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigurationError(f"StatsD port out of range: {port}")
    return port


def parse_server(server: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts."""
    text = str(server).strip()
    if text.startswith("["):
        host, sep, port = text[1:].partition("]:")
    else:
        host, sep, port = text.rpartition(":")
    if not sep or not host:
        raise ConfigurationError(f"StatsD server must look like host:port, got {server!r}")
    return host, parse_port(port)


@dataclass
class EmitterConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    mode: str = "development"
    enabled: bool = True
    default_sample_rate: float = 1.0
    prefix: Optional[str] = None
    implementation: Dialect = Dialect.STATSD

    def __post_init__(self) -> None:
        self.port = parse_port(self.port)
        self.mode = str(self.mode).strip().lstrip(":").lower()
        self.implementation = Dialect.parse(self.implementation)
        self.default_sample_rate = float(self.default_sample_rate)
        if self.prefix == "":
            self.prefix = None

    @property
    def server(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    @server.setter
    def server(self, value: str) -> None:
        self.host, self.port = parse_server(value)

    @property
    def endpoint(self) -> tuple[str, int]:
        return self.host, self.port

    @property
    def is_production(self) -> bool:
        return self.mode == PRODUCTION
