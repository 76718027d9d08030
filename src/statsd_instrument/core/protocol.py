"""StatsD line protocol encoding.

Format::

    [<prefix>.]<key>:<value>|<type>[|@<rate>][|#<tag>,...][\\n on statsite]

Examples::

    glork:320|ms
    gorets:1|c
    gaugor:333|g
    gaugor:1234|kv|@1339864935      (statsite, epoch)
    histogram:123.45|h              (datadog)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from statsd_instrument.core.config import Dialect
from statsd_instrument.errors import InvalidArgument, UnsupportedOperation

NAMESPACE_SEPARATOR = "::"
TAG_PATTERN = re.compile(r"(\w[\w-]*:)?[\w-]+")


class MetricKind(str, Enum):
    TIMING = "ms"
    COUNT = "c"
    GAUGE = "g"
    HISTOGRAM = "h"


@dataclass(frozen=True, slots=True)
class MetricSample:
    key: str
    value: float
    kind: MetricKind
    sample_rate: float = 1.0
    tags: Optional[Sequence[str]] = None


def normalize_key(key: str) -> str:
    return str(key).replace(NAMESPACE_SEPARATOR, ".")


def validate_tags(tags: Sequence[str], implementation: Dialect) -> list[str]:
    if implementation is not Dialect.DATADOG:
        raise InvalidArgument("Tags are only supported on Datadog")
    if isinstance(tags, str):
        tags = [tags]
    checked = [str(tag) for tag in tags]
    bad = [tag for tag in checked if not TAG_PATTERN.fullmatch(tag)]
    if bad:
        raise InvalidArgument(f"Tags not properly formatted: {bad}")
    return checked


def type_suffix(kind: MetricKind, implementation: Dialect) -> str:
    if kind is MetricKind.GAUGE and implementation is Dialect.STATSITE:
        return "kv"
    if kind is MetricKind.HISTOGRAM and implementation is not Dialect.DATADOG:
        raise UnsupportedOperation("Histograms only supported on DataDog implementation.")
    return kind.value


def wants_rate_suffix(sample_rate: float, implementation: Dialect) -> bool:
    # statsite reads a value > 1 as the epoch the gauge belongs to
    return sample_rate < 1 or (implementation is Dialect.STATSITE and sample_rate > 1)


def encode(sample: MetricSample, implementation: Dialect, prefix: Optional[str] = None) -> str:
    key = normalize_key(sample.key)
    if prefix:
        key = f"{prefix}.{key}"

    parts = [f"{key}:{sample.value}", type_suffix(sample.kind, implementation)]
    if wants_rate_suffix(sample.sample_rate, implementation):
        parts.append(f"@{sample.sample_rate}")
    # an empty tag list means no tags, on every dialect
    if sample.tags:
        parts.append("#" + ",".join(validate_tags(sample.tags, implementation)))

    command = "|".join(parts)
    if implementation is Dialect.STATSITE:
        command += "\n"
    return command
