import random
from typing import Any, Callable, Optional, Sequence, TypeVar

from structlog import get_logger

from statsd_instrument.core import timebase
from statsd_instrument.core.config import Dialect, EmitterConfig, parse_port
from statsd_instrument.core.protocol import MetricKind, MetricSample, encode
from statsd_instrument.errors import InvalidArgument, UnsupportedOperation
from statsd_instrument.observability.metrics import ClientMetrics
from statsd_instrument.transport.policy import LogAndSuppress, TransportErrorPolicy
from statsd_instrument.transport.udp import Connection, DatagramTransport, UDPTransport

T = TypeVar("T")

Tags = Optional[Sequence[str]]


class MetricEmitter:
    """Encodes metrics into StatsD lines and ships them over UDP.

    Outside ``production`` mode nothing touches the network: every command is
    written to ``logger`` instead. Transport failures are handed to
    ``error_policy`` and never raised to the caller.
    """

    def __init__(
        self,
        config: Optional[EmitterConfig] = None,
        *,
        logger: Any = None,
        transport_factory: Callable[[], DatagramTransport] = UDPTransport,
        error_policy: Optional[TransportErrorPolicy] = None,
        rng: Callable[[], float] = random.random,
        metrics: Optional[ClientMetrics] = None,
    ):
        self.config = config or EmitterConfig()
        self.logger = logger or get_logger("statsd")
        self.metrics = metrics or ClientMetrics.get()
        self.error_policy = error_policy or LogAndSuppress(self.metrics)
        self._rng = rng
        self._connection = Connection(transport_factory)

    # ── Configuration surface ─────────────────────────────────────────────

    @property
    def host(self) -> str:
        return self.config.host

    @host.setter
    def host(self, value: str) -> None:
        self.config.host = value
        self.invalidate()

    @property
    def port(self) -> int:
        return self.config.port

    @port.setter
    def port(self, value: int) -> None:
        self.config.port = parse_port(value)
        self.invalidate()

    @property
    def server(self) -> str:
        return self.config.server

    @server.setter
    def server(self, value: str) -> None:
        self.config.server = value
        self.invalidate()

    @property
    def mode(self) -> str:
        return self.config.mode

    @mode.setter
    def mode(self, value: str) -> None:
        self.config.mode = str(value).strip().lstrip(":").lower()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self.config.enabled = bool(value)

    @property
    def default_sample_rate(self) -> float:
        return self.config.default_sample_rate

    @default_sample_rate.setter
    def default_sample_rate(self, value: float) -> None:
        self.config.default_sample_rate = float(value)

    @property
    def prefix(self) -> Optional[str]:
        return self.config.prefix

    @prefix.setter
    def prefix(self, value: Optional[str]) -> None:
        self.config.prefix = value or None

    @property
    def implementation(self) -> Dialect:
        return self.config.implementation

    @implementation.setter
    def implementation(self, value: "Dialect | str") -> None:
        self.config.implementation = Dialect.parse(value)

    # ── Connection ────────────────────────────────────────────────────────

    @property
    def socket(self) -> DatagramTransport:
        return self._connection.get(*self.config.endpoint)

    def invalidate(self) -> None:
        self._connection.invalidate()

    def close(self) -> None:
        self._connection.invalidate()

    # ── Emission ──────────────────────────────────────────────────────────

    def measure(
        self,
        key: str,
        millis: Optional[float] = None,
        sample_rate: Optional[float] = None,
        tags: Tags = None,
        *,
        func: Optional[Callable[[], T]] = None,
    ) -> Optional[T]:
        """Emit a timing, either ``millis`` or the wall-clock duration of ``func()``.

        Returns whatever ``func`` returned. If ``func`` raises, nothing is emitted.
        """
        result = None
        if millis is None:
            if func is None:
                raise InvalidArgument("measure needs either millis or a callable to time")
            start = timebase.perf_ns()
            result = func()
            millis = timebase.elapsed_ms(start)
        self.write(key, millis, MetricKind.TIMING, sample_rate, tags)
        return result

    def increment(self, key: str, delta: float = 1, sample_rate: Optional[float] = None, tags: Tags = None) -> None:
        self.write(key, delta, MetricKind.COUNT, sample_rate, tags)

    def gauge(self, key: str, value: float, sample_rate_or_epoch: Optional[float] = None, tags: Tags = None) -> None:
        # On statsite a second argument above 1 is the epoch the value belongs to.
        self.write(key, value, MetricKind.GAUGE, sample_rate_or_epoch, tags)

    def histogram(self, key: str, value: float, sample_rate_or_epoch: Optional[float] = None, tags: Tags = None) -> None:
        if self.config.implementation is not Dialect.DATADOG:
            raise UnsupportedOperation("Histograms only supported on DataDog implementation.")
        self.write(key, value, MetricKind.HISTOGRAM, sample_rate_or_epoch, tags)

    def write(
        self,
        key: str,
        value: float,
        kind: "MetricKind | str",
        sample_rate: Optional[float] = None,
        tags: Tags = None,
    ) -> None:
        config = self.config
        if not config.enabled:
            self.metrics.samples_dropped_total.labels(reason="disabled").inc()
            return

        rate = config.default_sample_rate if sample_rate is None else sample_rate
        if rate < 1 and self._rng() > rate:
            self.metrics.samples_dropped_total.labels(reason="sampled").inc()
            return

        sample = MetricSample(key=key, value=value, kind=MetricKind(kind), sample_rate=rate, tags=tags)
        command = encode(sample, config.implementation, config.prefix)

        if config.is_production:
            self._send(command)
        else:
            self.logger.info(f"[StatsD] {command}")
            self.metrics.commands_logged_total.inc()

    def _send(self, command: str) -> None:
        try:
            self.socket.send(command.encode("utf-8"))
        except OSError as exc:
            self.error_policy.handle(exc, command, self.logger)
        else:
            self.metrics.datagrams_sent_total.inc()
