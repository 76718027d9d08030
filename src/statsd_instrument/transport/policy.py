"""What happens when a datagram cannot be delivered.

Delivery is best effort: the default policy logs the failure on the emitter's
logger, counts it and returns. Tests inject their own policy to observe
failures without a network.
"""

from typing import Any, Optional, Protocol

from statsd_instrument.observability.metrics import ClientMetrics


class TransportErrorPolicy(Protocol):
    def handle(self, exc: OSError, command: str, logger: Any) -> None: ...


class LogAndSuppress:
    def __init__(self, metrics: Optional[ClientMetrics] = None):
        self.metrics = metrics

    def handle(self, exc: OSError, command: str, logger: Any) -> None:
        logger.error("StatsD send failed", error=str(exc), error_type=type(exc).__name__, command=command)
        if self.metrics is not None:
            self.metrics.send_errors_total.labels(error=type(exc).__name__).inc()
