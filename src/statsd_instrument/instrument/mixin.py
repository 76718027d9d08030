from typing import Any, Optional

from statsd_instrument.instrument.binder import Classifier, InstrumentationBinder, InstrumentationBinding


class StatsDInstrument:
    """Class-level shortcuts for binding metrics to a class's own methods.

        class Gateway(StatsDInstrument):
            def submit(self, order): ...

        Gateway.statsd_count_success("submit", "gateway.submit")

    Bindings go through ``statsd_binder`` when a subclass sets one, otherwise
    through the process-wide default binder.
    """

    statsd_binder: Optional[InstrumentationBinder] = None

    @classmethod
    def _resolve_statsd_binder(cls) -> InstrumentationBinder:
        if cls.statsd_binder is not None:
            return cls.statsd_binder
        from statsd_instrument import get_binder

        return get_binder()

    @classmethod
    def statsd_measure(cls, method: str, name: Any, sample_rate: Optional[float] = None) -> InstrumentationBinding:
        return cls._resolve_statsd_binder().bind_measure(cls, method, name, sample_rate)

    @classmethod
    def statsd_count_success(
        cls,
        method: str,
        name: Any,
        sample_rate: Optional[float] = None,
        classifier: Optional[Classifier] = None,
    ) -> InstrumentationBinding:
        return cls._resolve_statsd_binder().bind_count_success(cls, method, name, sample_rate, classifier)

    @classmethod
    def statsd_count_if(
        cls,
        method: str,
        name: Any,
        sample_rate: Optional[float] = None,
        classifier: Optional[Classifier] = None,
    ) -> InstrumentationBinding:
        return cls._resolve_statsd_binder().bind_count_if(cls, method, name, sample_rate, classifier)

    @classmethod
    def statsd_count(cls, method: str, name: Any, sample_rate: Optional[float] = None) -> InstrumentationBinding:
        return cls._resolve_statsd_binder().bind_count(cls, method, name, sample_rate)
