"""Metric names for instrumented methods: a fixed string or computed per call.

A computed name is called as ``fn(instance, args)``; when it takes a third
positional parameter it is called as ``fn(instance, args, kwargs)``.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from statsd_instrument.errors import ConfigurationError

COMPUTED_PLACEHOLDER = "<computed>"

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _takes_kwargs(fn: Callable[..., str]) -> bool:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    return sum(1 for p in params if p.kind in _POSITIONAL) >= 3


@dataclass(frozen=True)
class LiteralName:
    name: str

    @property
    def label(self) -> str:
        return self.name

    def resolve(self, instance: Any, args: tuple, kwargs: Optional[dict] = None) -> str:
        return self.name


@dataclass(frozen=True)
class ComputedName:
    fn: Callable[..., str]
    with_kwargs: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "with_kwargs", _takes_kwargs(self.fn))

    @property
    def label(self) -> str:
        return COMPUTED_PLACEHOLDER

    def resolve(self, instance: Any, args: tuple, kwargs: Optional[dict] = None) -> str:
        if self.with_kwargs:
            return str(self.fn(instance, args, kwargs or {}))
        return str(self.fn(instance, args))


MetricName = Union[LiteralName, ComputedName]


def metric_name(value: "MetricName | str | Callable[..., str]") -> MetricName:
    if isinstance(value, (LiteralName, ComputedName)):
        return value
    if isinstance(value, str):
        if not value:
            raise ConfigurationError("metric name must not be empty")
        return LiteralName(value)
    if callable(value):
        return ComputedName(value)
    raise ConfigurationError(f"metric name must be a string or a callable, got {type(value).__name__}")
