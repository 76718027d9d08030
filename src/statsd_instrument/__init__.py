"""StatsD client with method instrumentation.

    import statsd_instrument as statsd

    statsd.configure(server="metrics.internal:8125", mode="production")
    statsd.increment("orders.created")
    statsd.measure("orders.render", func=render)

The process-wide emitter is built lazily from ``load_config()`` the first
time it is needed.
"""

from typing import Any, Optional

from statsd_instrument.config.loader import load_config
from statsd_instrument.core.config import Dialect, EmitterConfig
from statsd_instrument.core.protocol import MetricKind, MetricSample, encode
from statsd_instrument.emitter import MetricEmitter
from statsd_instrument.errors import ConfigurationError, InvalidArgument, StatsDError, UnsupportedOperation
from statsd_instrument.instrument.binder import InstrumentationBinder, InstrumentationBinding
from statsd_instrument.instrument.mixin import StatsDInstrument
from statsd_instrument.instrument.names import ComputedName, LiteralName

_emitter: Optional[MetricEmitter] = None
_binder: Optional[InstrumentationBinder] = None

_CONFIGURABLE = {
    "host",
    "port",
    "server",
    "mode",
    "enabled",
    "default_sample_rate",
    "prefix",
    "implementation",
    "logger",
}


def get_emitter() -> MetricEmitter:
    global _emitter
    if _emitter is None:
        config, _ = load_config()
        _emitter = MetricEmitter(config)
    return _emitter


def get_binder() -> InstrumentationBinder:
    global _binder
    if _binder is None:
        _binder = InstrumentationBinder(get_emitter())
    return _binder


def configure(**changes: Any) -> MetricEmitter:
    unknown = set(changes) - _CONFIGURABLE
    if unknown:
        raise ConfigurationError(f"unknown StatsD settings: {sorted(unknown)}")
    emitter = get_emitter()
    # server before host/port so an explicit host or port still wins
    if "server" in changes:
        emitter.server = changes.pop("server")
    for name, value in changes.items():
        setattr(emitter, name, value)
    return emitter


def reset_for_tests() -> None:
    global _emitter, _binder
    if _emitter is not None:
        _emitter.close()
    _emitter = None
    _binder = None


def measure(key, millis=None, sample_rate=None, tags=None, *, func=None):
    return get_emitter().measure(key, millis, sample_rate, tags, func=func)


def increment(key, delta=1, sample_rate=None, tags=None):
    get_emitter().increment(key, delta, sample_rate, tags)


def gauge(key, value, sample_rate_or_epoch=None, tags=None):
    get_emitter().gauge(key, value, sample_rate_or_epoch, tags)


def histogram(key, value, sample_rate_or_epoch=None, tags=None):
    get_emitter().histogram(key, value, sample_rate_or_epoch, tags)


__all__ = [
    "ComputedName",
    "ConfigurationError",
    "Dialect",
    "EmitterConfig",
    "InstrumentationBinder",
    "InstrumentationBinding",
    "InvalidArgument",
    "LiteralName",
    "MetricEmitter",
    "MetricKind",
    "MetricSample",
    "StatsDError",
    "StatsDInstrument",
    "UnsupportedOperation",
    "configure",
    "encode",
    "gauge",
    "get_binder",
    "get_emitter",
    "histogram",
    "increment",
    "load_config",
    "measure",
    "reset_for_tests",
]
