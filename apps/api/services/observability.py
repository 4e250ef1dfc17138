from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Tracer

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Librerías ruidosas a INFO: el cuerpo de cada request a los proveedores no aporta.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _truthy(value: str) -> bool:
    return value.lower() in {"1", "true", "yes"}


@dataclass(slots=True, frozen=True)
class ObservabilityConfig:
    service_name: str = "onomatopoeia-arena"
    environment: str = "dev"
    otlp_endpoint: str = ""
    console_spans: bool = False
    log_level: str = "INFO"
    metric_export_interval_ms: int = 10_000

    @classmethod
    def from_env(cls) -> "ObservabilityConfig":
        return cls(
            service_name=os.getenv("OTEL_SERVICE_NAME", "onomatopoeia-arena"),
            environment=os.getenv("ENV", "dev"),
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
            console_spans=_truthy(os.getenv("OBS_CONSOLE_DEBUG", "false")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            metric_export_interval_ms=int(os.getenv("OTEL_METRIC_EXPORT_INTERVAL", "10000")),
        )


def setup_logging(cfg: ObservabilityConfig) -> None:
    # basicConfig no toca el root logger si ya tiene handlers (uvicorn, pytest).
    logging.basicConfig(level=cfg.log_level, format=LOG_FORMAT)
    logging.getLogger("apps").setLevel(cfg.log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_resource(cfg: ObservabilityConfig) -> Resource:
    return Resource.create(
        {
            "service.name": cfg.service_name,
            "deployment.environment": cfg.environment,
        }
    )


def build_tracer_provider(cfg: ObservabilityConfig, resource: Resource) -> TracerProvider:
    """Spans compare.run / provider.generate / feedback.* / probe.run.

    Sin endpoint ni consola el provider queda sin exporters (no-op barato).
    """
    provider = TracerProvider(resource=resource)
    if cfg.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=cfg.otlp_endpoint)))
    if cfg.console_spans:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


def build_meter_provider(cfg: ObservabilityConfig, resource: Resource) -> MeterProvider:
    readers: list[MetricReader] = []
    if cfg.otlp_endpoint:
        readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=cfg.otlp_endpoint),
                export_interval_millis=cfg.metric_export_interval_ms,
            )
        )
    return MeterProvider(resource=resource, metric_readers=readers)


_INITIALIZED = False


def setup_observability(cfg: ObservabilityConfig | None = None) -> None:
    """Logging + trazas + métricas del proceso. Idempotente."""
    global _INITIALIZED
    if _INITIALIZED:
        return

    cfg = cfg or ObservabilityConfig.from_env()
    setup_logging(cfg)

    resource = build_resource(cfg)
    trace.set_tracer_provider(build_tracer_provider(cfg, resource))
    metrics.set_meter_provider(build_meter_provider(cfg, resource))

    _INITIALIZED = True


def get_tracer(name: str = "apps.api") -> Tracer:
    return trace.get_tracer(name)


def get_meter(name: str = "apps.api"):
    return metrics.get_meter(name)
