from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, generate_latest

METRIC_PREFIX = "statsd_client_"


def _unregister_metric_prefixes(prefixes, registry: CollectorRegistry = REGISTRY) -> None:
    names = registry._names_to_collectors  # type: ignore[attr-defined]
    collectors = {collector for name, collector in list(names.items()) if name.startswith(tuple(prefixes))}
    for collector in collectors:
        registry.unregister(collector)


class ClientMetrics:
    """Prometheus counters describing the StatsD client itself."""

    _instance = None

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry
        _unregister_metric_prefixes([METRIC_PREFIX], registry)

        self.datagrams_sent_total = Counter(
            "statsd_client_datagrams_sent_total", "Datagrams handed to the socket", registry=registry
        )
        self.commands_logged_total = Counter(
            "statsd_client_commands_logged_total", "Commands routed to the logger outside production", registry=registry
        )
        self.send_errors_total = Counter(
            "statsd_client_send_errors_total", "Suppressed transport failures", ["error"], registry=registry
        )
        self.samples_dropped_total = Counter(
            "statsd_client_samples_dropped_total", "Samples not emitted", ["reason"], registry=registry
        )
        self.bindings_total = Counter(
            "statsd_client_bindings_total", "Methods instrumented", ["action"], registry=registry
        )

    @classmethod
    def get(cls) -> "ClientMetrics":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_for_tests(cls) -> None:
        cls._instance = None


def render_latest(registry: CollectorRegistry = REGISTRY) -> tuple[bytes, str]:
    return generate_latest(registry), CONTENT_TYPE_LATEST
