"""Tracing setup for the cache runtime.

Spans go to a console or OTLP exporter. The Redis client, the SQL data
source engine and log records are instrumented once the provider exists.
"""

import logging
import threading
from collections.abc import Callable

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

from entrycache.core.config import Settings

logger = logging.getLogger(__name__)


class TelemetryConfig:
    """Tracer provider plus instrumentation for one cache runtime."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.enabled = settings.telemetry_enabled
        self.tracer_provider: TracerProvider | None = None

    def _exporter(self) -> SpanExporter | None:
        kind = self.settings.telemetry_exporter
        endpoint = self.settings.telemetry_otlp_endpoint
        if kind == "none":
            return None
        if kind == "otlp" and endpoint:
            return OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://"))
        if kind != "console":
            logger.warning("Unknown exporter type '%s', using console", kind)
        return ConsoleSpanExporter()

    def setup(self) -> TracerProvider | None:
        """Install the global tracer provider. None when disabled or setup failed."""
        if not self.enabled:
            logger.info("Telemetry disabled")
            return None
        s = self.settings
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: s.app_name,
                        SERVICE_VERSION: s.app_version,
                        "deployment.environment": s.telemetry_environment,
                    }
                ),
                sampler=TraceIdRatioBased(s.telemetry_sample_rate),
            )
            exporter = self._exporter()
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception as e:
            logger.exception("Failed to initialize telemetry: %s", e)
            return None
        self.tracer_provider = provider
        logger.info(
            "OpenTelemetry initialized: service=%s, exporter=%s",
            s.app_name,
            s.telemetry_exporter,
        )
        return provider

    def instrument(self, engine: AsyncEngine | None = None) -> list[str]:
        """Instrument Redis, logging and (when given) the SQL engine.

        A failing instrumentor is logged and skipped.

        Returns:
            Names of the instrumentations that were enabled.
        """
        if self.tracer_provider is None:
            return []
        tp = self.tracer_provider
        steps: list[tuple[str, Callable[[], object]]] = [
            ("redis", lambda: RedisInstrumentor().instrument(tracer_provider=tp)),
            ("logging", lambda: LoggingInstrumentor().instrument(tracer_provider=tp)),
        ]
        if engine is not None:
            steps.append(
                (
                    "sqlalchemy",
                    lambda: SQLAlchemyInstrumentor().instrument(
                        engine=engine.sync_engine, tracer_provider=tp
                    ),
                )
            )
        enabled = []
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.exception("Failed to instrument %s: %s", name, e)
                continue
            enabled.append(name)
        logger.info("Instrumentation enabled: %s", ", ".join(enabled) or "none")
        return enabled

    def shutdown(self) -> None:
        """Flush remaining spans and stop the tracer provider."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception as e:
            logger.exception("Error during telemetry shutdown: %s", e)
        self.tracer_provider = None


_telemetry: TelemetryConfig | None = None
_telemetry_lock = threading.RLock()


def get_telemetry() -> TelemetryConfig | None:
    """Return the process-wide telemetry instance (set at startup)."""
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: TelemetryConfig | None) -> None:
    """Set (or with None, clear) the process-wide telemetry instance."""
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry
