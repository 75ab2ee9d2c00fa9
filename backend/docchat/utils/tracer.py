"""OpenTelemetry tracing setup for answer synthesis and generation calls."""
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.openai import OpenAIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

from docchat.utils.logger import logger

SERVICE_NAME = "docchat"


def build_exporter(otlp_endpoint: Optional[str]) -> SpanExporter:
    """OTLP over HTTP when an endpoint is configured, console output otherwise."""
    if otlp_endpoint:
        logger.info(f"Tracing spans exported to {otlp_endpoint}")
        return OTLPSpanExporter(endpoint=otlp_endpoint)
    logger.info("Tracing spans written to the console")
    return ConsoleSpanExporter()


def initialize_tracing(
    service_version: str,
    otlp_endpoint: Optional[str] = None,
    tracing_enabled: bool = True,
) -> Optional[TracerProvider]:
    """
    Install a global tracer provider and instrument the OpenAI SDK.

    The synthesizer's "docchat.answer" and "docchat.generate" spans are
    recorded either way; without a provider they are no-ops.

    Returns:
        The installed provider, or None when tracing is disabled or setup failed
    """
    if not tracing_enabled:
        logger.info("Tracing is disabled")
        return None

    try:
        provider = TracerProvider(
            resource=Resource.create({"service.name": SERVICE_NAME, "service.version": service_version})
        )
        provider.add_span_processor(BatchSpanProcessor(build_exporter(otlp_endpoint)))
        trace.set_tracer_provider(provider)
        OpenAIInstrumentor().instrument()
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {str(e)}", exc_info=True)
        return None

    return provider


def shutdown_tracing(provider: Optional[TracerProvider]) -> None:
    if provider is None:
        return
    try:
        provider.shutdown()
    except Exception as e:
        logger.warning(f"Error during tracing shutdown: {str(e)}")
