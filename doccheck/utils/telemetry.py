from urllib.parse import urlsplit

import requests
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .logger import logger

DEFAULT_ENDPOINT = "http://localhost:4318/v1/traces"

_provider = None


def collector_reachable(endpoint: str, timeout: float = 1.0) -> bool:
    """True when anything answers HTTP at the endpoint's host and port."""
    parts = urlsplit(endpoint)
    try:
        requests.head(f"{parts.scheme}://{parts.netloc}/", timeout=timeout)
    except requests.RequestException:
        return False
    return True


def init_telemetry(endpoint: str = DEFAULT_ENDPOINT, enabled: bool = True) -> bool:
    """
    Export the spans of this process to an OTLP/HTTP collector.

    Does nothing unless `enabled` and a collector answers; spans then go to the
    no-op tracer of the OpenTelemetry API. Returns whether export is active.
    """
    global _provider
    if _provider is not None:
        return True
    if not enabled:
        return False
    if not collector_reachable(endpoint):
        logger.bind(check="telemetry").info(f"No trace collector answers at {endpoint}; spans are not exported")
        return False

    _provider = TracerProvider()
    _provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(_provider)
    logger.bind(check="telemetry").info(f"Exporting spans to {endpoint}")
    return True


def get_tracer(name: str = "doccheck"):
    return trace.get_tracer(name)
