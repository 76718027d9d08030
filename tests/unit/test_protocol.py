import pytest

from statsd_instrument.core.config import Dialect
from statsd_instrument.core.protocol import (
    MetricKind,
    MetricSample,
    encode,
    normalize_key,
    validate_tags,
)
from statsd_instrument.errors import InvalidArgument, UnsupportedOperation


def test_namespace_separator_becomes_dot():
    assert normalize_key("ActiveMerchant::Billing::charge") == "ActiveMerchant.Billing.charge"
    assert encode(MetricSample("a::b", 1, MetricKind.COUNT), Dialect.STATSD) == "a.b:1|c"


def test_type_suffixes_per_kind():
    assert encode(MetricSample("glork", 320, MetricKind.TIMING), Dialect.STATSD) == "glork:320|ms"
    assert encode(MetricSample("gaugor", 333, MetricKind.GAUGE), Dialect.STATSD) == "gaugor:333|g"
    assert encode(MetricSample("h", 123.45, MetricKind.HISTOGRAM), Dialect.DATADOG) == "h:123.45|h"


def test_prefix_is_joined_with_dot():
    sample = MetricSample("orders::created", 2, MetricKind.COUNT)
    assert encode(sample, Dialect.STATSD, prefix="shop") == "shop.orders.created:2|c"


def test_sample_rate_suffix_only_below_one():
    assert encode(MetricSample("g", 1, MetricKind.GAUGE, 0.5), Dialect.STATSD) == "g:1|g|@0.5"
    assert encode(MetricSample("g", 1, MetricKind.GAUGE, 1.0), Dialect.STATSD) == "g:1|g"
    assert encode(MetricSample("g", 1, MetricKind.GAUGE, 2), Dialect.STATSD) == "g:1|g"


def test_statsite_gauge_uses_kv_epoch_and_newline():
    sample = MetricSample("gaugor", 1234, MetricKind.GAUGE, 1339864935)
    assert encode(sample, Dialect.STATSITE) == "gaugor:1234|kv|@1339864935\n"
    assert encode(MetricSample("c", 1, MetricKind.COUNT), Dialect.STATSITE) == "c:1|c\n"


def test_histogram_requires_datadog():
    with pytest.raises(UnsupportedOperation):
        encode(MetricSample("h", 1, MetricKind.HISTOGRAM), Dialect.STATSD)
    with pytest.raises(UnsupportedOperation):
        encode(MetricSample("h", 1, MetricKind.HISTOGRAM), Dialect.STATSITE)


def test_datadog_tags_keep_order():
    sample = MetricSample("k", 5, MetricKind.TIMING, 0.5, tags=["env:prod", "v2"])
    assert encode(sample, Dialect.DATADOG) == "k:5|ms|@0.5|#env:prod,v2"


def test_tags_rejected_outside_datadog():
    with pytest.raises(InvalidArgument, match="Datadog"):
        encode(MetricSample("k", 1, MetricKind.COUNT, tags=["env:prod"]), Dialect.STATSD)


@pytest.mark.parametrize("tag", ["bad tag!", "env:", ":prod", "a:b:c", "", "-lead:x"])
def test_malformed_tags_rejected(tag):
    with pytest.raises(InvalidArgument):
        validate_tags(["ok", tag], Dialect.DATADOG)


def test_valid_tag_shapes():
    tags = ["env:prod", "v2", "region-name:us-east-1a", "with_underscore"]
    assert validate_tags(tags, Dialect.DATADOG) == tags


def test_empty_tags_add_nothing():
    assert encode(MetricSample("k", 1, MetricKind.COUNT, tags=[]), Dialect.STATSD) == "k:1|c"
    assert encode(MetricSample("k", 1, MetricKind.COUNT, tags=[]), Dialect.DATADOG) == "k:1|c"
    assert encode(MetricSample("k", 1, MetricKind.COUNT, tags=None), Dialect.STATSITE) == "k:1|c\n"
