import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from prometheus_client import CollectorRegistry  # noqa: E402

from statsd_instrument.core.config import EmitterConfig  # noqa: E402
from statsd_instrument.emitter import MetricEmitter  # noqa: E402
from statsd_instrument.observability.metrics import ClientMetrics  # noqa: E402


class FakeTransport:
    def __init__(self, network: "FakeNetwork"):
        self.network = network
        self.endpoint = None
        self.sent: list[bytes] = []
        self.closed = False

    def connect(self, host, port):
        if self.network.fail_connect is not None:
            raise self.network.fail_connect
        self.endpoint = (host, port)

    def send(self, data):
        if self.network.fail_send is not None:
            raise self.network.fail_send
        self.sent.append(data)
        return len(data)

    def close(self):
        self.closed = True


class FakeNetwork:
    """Records every transport the emitter opens and every datagram sent."""

    def __init__(self):
        self.transports: list[FakeTransport] = []
        self.fail_connect = None
        self.fail_send = None

    def factory(self):
        transport = FakeTransport(self)
        self.transports.append(transport)
        return transport

    @property
    def sent(self) -> list[str]:
        return [payload.decode("utf-8") for t in self.transports for payload in t.sent]


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def client_metrics(registry):
    return ClientMetrics(registry)


@pytest.fixture
def sink():
    return MagicMock()


@pytest.fixture
def make_emitter(network, client_metrics, sink):
    def _make(rng=lambda: 0.0, **config):
        config.setdefault("mode", "production")
        return MetricEmitter(
            EmitterConfig(**config),
            logger=sink,
            transport_factory=network.factory,
            rng=rng,
            metrics=client_metrics,
        )

    return _make
