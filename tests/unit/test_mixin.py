from unittest.mock import MagicMock

import pytest

import statsd_instrument
from statsd_instrument.errors import ConfigurationError
from statsd_instrument.instrument.binder import InstrumentationBinder
from statsd_instrument.instrument.mixin import StatsDInstrument


def test_mixin_binds_through_class_binder(make_emitter, network):
    binder = InstrumentationBinder(make_emitter())

    class Shipping(StatsDInstrument):
        statsd_binder = binder

        def ssl_request(self, ok):
            return ok

        def quote(self):
            return 12

    Shipping.statsd_count_success("ssl_request", "Shipping.ssl_request")
    Shipping.statsd_count_if("ssl_request", "Shipping.ssl_request.ok")
    Shipping.statsd_count("quote", "Shipping.quote")
    Shipping.statsd_measure("quote", "Shipping.quote.time")

    shipping = Shipping()
    assert shipping.ssl_request(True) is True
    assert shipping.quote() == 12

    assert network.sent[0] == "Shipping.ssl_request.success:1|c"
    assert network.sent[1] == "Shipping.ssl_request.ok:1|c"
    assert network.sent[2] == "Shipping.quote:1|c"
    assert network.sent[3].startswith("Shipping.quote.time:")
    assert network.sent[3].endswith("|ms")

    with pytest.raises(ConfigurationError):
        Shipping.statsd_count("quote", "Shipping.quote")


def test_mixin_falls_back_to_default_binder(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STATSD_MODE", raising=False)
    statsd_instrument.reset_for_tests()
    sink = MagicMock()
    statsd_instrument.configure(logger=sink)

    class Worker(StatsDInstrument):
        def run(self):
            return "done"

    Worker.statsd_count("run", "worker.run")
    assert Worker().run() == "done"
    assert statsd_instrument.get_binder().is_bound(Worker, "run", "count")
    sink.info.assert_called_once_with("[StatsD] worker.run:1|c")
    statsd_instrument.reset_for_tests()


def test_rebinding_after_default_reset_is_rejected(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STATSD_MODE", raising=False)
    statsd_instrument.reset_for_tests()
    sink = MagicMock()
    statsd_instrument.configure(logger=sink)

    class Gateway(StatsDInstrument):
        def submit(self):
            return "sent"

    Gateway.statsd_count("submit", "gw.submit")
    statsd_instrument.reset_for_tests()
    statsd_instrument.configure(logger=sink)

    with pytest.raises(ConfigurationError):
        Gateway.statsd_count("submit", "gw.submit")

    sink.reset_mock()
    Gateway().submit()
    # the first binding still emits through the emitter it was bound with
    sink.info.assert_called_once_with("[StatsD] gw.submit:1|c")
    statsd_instrument.reset_for_tests()
