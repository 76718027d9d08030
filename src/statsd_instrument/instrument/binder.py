"""Bind StatsD metrics to existing methods.

Each binding replaces ``owner.<method_name>`` with a wrapper that calls the
original and emits as a side effect. Return values and exceptions of the
original pass through untouched; emission failures are logged and dropped.

    binder.bind_count_success(Gateway, "submit", "gateway.submit")
    binder.bind_measure(Gateway, "submit", lambda gw, args: f"gateway.{gw.venue}.submit")
    binder.bind_count(Gateway, "submit", lambda gw, args, kwargs: f"gateway.{kwargs['venue']}.submit")

A ``(owner, method, action)`` triple can be bound once per process, whichever
binder does it: the table of bindings lives on the owner class itself. Binding
happens at import or startup time; it is not meant to race with calls.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from structlog import get_logger

from statsd_instrument.core import timebase
from statsd_instrument.emitter import MetricEmitter
from statsd_instrument.errors import ConfigurationError
from statsd_instrument.instrument.names import MetricName, metric_name

logger = get_logger("instrument.binder")

MEASURE = "measure"
COUNT_SUCCESS = "count_success"
COUNT_IF = "count_if"
COUNT = "count"

BINDINGS_ATTR = "__statsd_bindings__"

Classifier = Callable[[Any], Any]
Hook = Callable[["CallRecord"], None]
BindingKey = Tuple[type, str, str]


@dataclass
class CallRecord:
    """What one invocation of a wrapped method did."""

    instance: Any
    args: tuple
    metric: MetricName
    kwargs: Dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Optional[BaseException] = None
    elapsed_ms: float = 0.0

    def key(self) -> str:
        return self.metric.resolve(self.instance, self.args, self.kwargs)


@dataclass
class InstrumentationBinding:
    owner: type
    method_name: str
    action: str
    metric: MetricName
    original: Callable[..., Any]
    wrapped: Callable[..., Any]
    without_name: str
    with_name: str


class InstrumentationBinder:
    def __init__(self, emitter: MetricEmitter):
        self.emitter = emitter
        self._bindings: Dict[BindingKey, InstrumentationBinding] = {}

    # ── Binding operations ────────────────────────────────────────────────

    def bind_measure(self, owner: type, method_name: str, metric: Any, sample_rate: Optional[float] = None):
        """Time every call and emit it as a timing; failed calls emit nothing."""

        def after(call: CallRecord) -> None:
            if call.error is None:
                self.emitter.measure(call.key(), call.elapsed_ms, sample_rate)

        return self._bind_hooks(owner, method_name, MEASURE, metric, after=after)

    def bind_count_success(
        self,
        owner: type,
        method_name: str,
        metric: Any,
        sample_rate: Optional[float] = None,
        classifier: Optional[Classifier] = None,
    ):
        """Count ``<name>.success`` or ``<name>.failure`` for every call.

        A call fails when it raises, or when the result (or the classifier's
        verdict on it) is exactly ``False``. ``None`` counts as success.
        """

        def after(call: CallRecord) -> None:
            verdict = False if call.error is not None else self._classify(classifier, call.result)
            outcome = "failure" if verdict is False else "success"
            self.emitter.increment(f"{call.key()}.{outcome}", 1, sample_rate)

        return self._bind_hooks(owner, method_name, COUNT_SUCCESS, metric, after=after)

    def bind_count_if(
        self,
        owner: type,
        method_name: str,
        metric: Any,
        sample_rate: Optional[float] = None,
        classifier: Optional[Classifier] = None,
    ):
        """Count the bare name only when the call returns (or is classified) truthy."""

        def after(call: CallRecord) -> None:
            if call.error is None and self._classify(classifier, call.result):
                self.emitter.increment(call.key(), 1, sample_rate)

        return self._bind_hooks(owner, method_name, COUNT_IF, metric, after=after)

    def bind_count(self, owner: type, method_name: str, metric: Any, sample_rate: Optional[float] = None):
        """Count every invocation, before the original runs."""

        def before(call: CallRecord) -> None:
            self.emitter.increment(call.key(), 1, sample_rate)

        return self._bind_hooks(owner, method_name, COUNT, metric, before=before)

    def bind_once(
        self,
        owner: type,
        method_name: str,
        action: str,
        metric: Any,
        build: Callable[[Callable[..., Any], MetricName], Callable[..., Any]],
    ) -> InstrumentationBinding:
        metric = metric_name(metric)
        owner_name = getattr(owner, "__name__", repr(owner))
        without_name = f"{method_name}_for_{action}_on_{owner_name}_without_{metric.label}"
        with_name = f"{method_name}_for_{action}_on_{owner_name}_with_{metric.label}"

        owner_bindings = self._owner_bindings(owner)
        if (method_name, action) in owner_bindings:
            raise ConfigurationError(f"already instrumented {method_name} for {owner_name}")

        original = self._find_method(owner, method_name)
        if original is None:
            raise ConfigurationError(f"could not find method {method_name} for {owner_name}")

        wrapped = build(original, metric)
        binding = InstrumentationBinding(
            owner=owner,
            method_name=method_name,
            action=action,
            metric=metric,
            original=original,
            wrapped=wrapped,
            without_name=without_name,
            with_name=with_name,
        )
        owner_bindings[(method_name, action)] = binding
        if BINDINGS_ATTR not in owner.__dict__:
            setattr(owner, BINDINGS_ATTR, owner_bindings)
        self._bindings[(owner, method_name, action)] = binding
        setattr(owner, method_name, wrapped)

        self.emitter.metrics.bindings_total.labels(action=action).inc()
        logger.info("Instrumented method", owner=owner_name, method=method_name, action=action, metric=metric.label)
        return binding

    # ── Introspection ─────────────────────────────────────────────────────

    def is_bound(self, owner: type, method_name: str, action: str) -> bool:
        return (method_name, action) in self._owner_bindings(owner)

    def original(self, owner: type, method_name: str, action: str) -> Callable[..., Any]:
        try:
            return self._owner_bindings(owner)[(method_name, action)].original
        except KeyError:
            raise ConfigurationError(f"{method_name} on {owner.__name__} is not instrumented for {action}") from None

    def bindings(self) -> List[InstrumentationBinding]:
        return list(self._bindings.values())

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _owner_bindings(owner: type) -> Dict[Tuple[str, str], InstrumentationBinding]:
        # own __dict__ only: a subclass may bind an inherited method separately
        return owner.__dict__.get(BINDINGS_ATTR, {})

    @staticmethod
    def _find_method(owner: type, method_name: str) -> Optional[Callable[..., Any]]:
        try:
            raw = inspect.getattr_static(owner, method_name)
        except AttributeError:
            return None
        if isinstance(raw, (staticmethod, classmethod, property)) or not callable(raw):
            return None
        return raw

    @staticmethod
    def _classify(classifier: Optional[Classifier], result: Any) -> Any:
        if classifier is None:
            return result
        try:
            return classifier(result)
        except Exception as exc:
            logger.debug("Instrumentation classifier failed, counting as failure", error=str(exc))
            return False

    def _run_hook(self, hook: Optional[Hook], call: CallRecord) -> None:
        if hook is None:
            return
        try:
            hook(call)
        except Exception as exc:
            logger.warning(
                "Instrumentation emit failed",
                metric=call.metric.label,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _bind_hooks(
        self,
        owner: type,
        method_name: str,
        action: str,
        metric: Any,
        before: Optional[Hook] = None,
        after: Optional[Hook] = None,
    ) -> InstrumentationBinding:
        def build(original: Callable[..., Any], name: MetricName) -> Callable[..., Any]:
            return self._wrap(original, name, before, after)

        return self.bind_once(owner, method_name, action, metric, build)

    def _wrap(
        self,
        original: Callable[..., Any],
        name: MetricName,
        before: Optional[Hook],
        after: Optional[Hook],
    ) -> Callable[..., Any]:
        run_hook = self._run_hook

        if inspect.iscoroutinefunction(original):

            @functools.wraps(original)
            async def async_wrapper(instance, *args, **kwargs):
                call = CallRecord(instance, args, name, kwargs)
                run_hook(before, call)
                start = timebase.perf_ns()
                try:
                    call.result = await original(instance, *args, **kwargs)
                    return call.result
                except BaseException as exc:
                    call.error = exc
                    raise
                finally:
                    call.elapsed_ms = timebase.elapsed_ms(start)
                    run_hook(after, call)

            return async_wrapper

        @functools.wraps(original)
        def wrapper(instance, *args, **kwargs):
            call = CallRecord(instance, args, name, kwargs)
            run_hook(before, call)
            start = timebase.perf_ns()
            try:
                call.result = original(instance, *args, **kwargs)
                return call.result
            except BaseException as exc:
                call.error = exc
                raise
            finally:
                call.elapsed_ms = timebase.elapsed_ms(start)
                run_hook(after, call)

        return wrapper
