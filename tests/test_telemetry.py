import pytest
import requests

from doccheck.utils import telemetry


def test_disabled_telemetry_contacts_no_collector(monkeypatch):
    def fail(*_args, **_kwargs):
        raise AssertionError("collector contacted")

    monkeypatch.setattr(telemetry.requests, "head", fail)
    assert telemetry.init_telemetry(enabled=False) is False


def test_unreachable_collector_skips_export(monkeypatch):
    seen = []

    def refuse(url, timeout=None):
        seen.append(url)
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(telemetry.requests, "head", refuse)
    assert telemetry.init_telemetry("http://collector.local:4318/v1/traces", enabled=True) is False
    assert seen == ["http://collector.local:4318/"]


@pytest.mark.parametrize("error, expected", [
    (None, True),
    (requests.Timeout("slow"), False),
])
def test_collector_reachable(monkeypatch, error, expected):
    def head(url, timeout=None):
        if error is not None:
            raise error

    monkeypatch.setattr(telemetry.requests, "head", head)
    assert telemetry.collector_reachable("http://localhost:4318/v1/traces") is expected


def test_tracer_without_provider_is_usable():
    with telemetry.get_tracer("tests").start_as_current_span("noop") as span:
        span.set_attribute("k", 1)
