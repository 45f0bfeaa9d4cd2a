from opentelemetry import trace
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from illustrator.config import GenerationSettings

_provider: TracerProvider | None = None


def setup_tracing(
    settings: GenerationSettings, exporter: SpanExporter | None = None
) -> TracerProvider:
    """
    Registers the global tracer provider once per process.

    Spans go to an OTLP collector unless another exporter is given.
    """
    global _provider
    if _provider is not None:
        return _provider

    if exporter is None:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        exporter = OTLPSpanExporter()

    resource = Resource(
        attributes={
            SERVICE_NAME: settings.service_name,
            DEPLOYMENT_ENVIRONMENT: settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    _provider = provider
    return provider
