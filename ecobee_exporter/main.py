#!/usr/bin/env python3
"""
Ecobee Prometheus Exporter API
Serves thermostat metrics scraped from the Ecobee cloud on each request
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from ecobee_exporter.collector import EcobeeCollector
from ecobee_exporter.config import EXPORTER_NAME, EXPORTER_VERSION, ExporterConfig
from ecobee_exporter.ecobee import EcobeeClient
from ecobee_exporter.exposition import build_registry
from ecobee_exporter.models import HealthStatus

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "System Information",
        "description": "Exporter metadata and health checks"
    },
    {
        "name": "Metrics",
        "description": "Prometheus metrics export, one Ecobee API scrape per request"
    }
]


def create_app(config: ExporterConfig, client: Optional[EcobeeClient] = None) -> FastAPI:
    """Build the FastAPI app around one Ecobee client and one metrics registry"""
    if client is None:
        client = EcobeeClient(config.api_key, config.cache_file, timeout=config.request_timeout)

    collector = EcobeeCollector.with_prefix(client, config.metric_prefix)
    registry = build_registry(collector)

    request_count = Counter(
        'ecobee_exporter_requests_total',
        'Total HTTP requests served by the exporter',
        ['method', 'endpoint'],
        registry=registry
    )
    request_duration = Histogram(
        'ecobee_exporter_request_duration_seconds',
        'HTTP request duration',
        registry=registry
    )

    app = FastAPI(
        title="Ecobee Prometheus Exporter",
        description="Republishes Ecobee thermostat, sensor and equipment state as Prometheus gauges.",
        version=EXPORTER_VERSION,
        openapi_tags=tags_metadata
    )
    app.state.config = config
    app.state.client = client
    app.state.registry = registry

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        with request_duration.time():
            request_count.labels(method=request.method, endpoint=request.url.path).inc()
            response = await call_next(request)
            return response

    @app.get("/", summary="Exporter Information", tags=["System Information"])
    async def root():
        """Root endpoint with exporter information"""
        return {
            "name": EXPORTER_NAME,
            "version": EXPORTER_VERSION,
            "metric_prefix": config.metric_prefix,
            "endpoints": {
                "metrics": config.telemetry_path,
                "health": "/health",
                "docs": "/docs"
            }
        }

    @app.get("/health", response_model=HealthStatus, summary="Health Check", tags=["System Information"])
    async def health_check():
        """
        Reports whether the exporter can authenticate against Ecobee.

        Healthy requires an API key and a cached access or refresh token.
        The Ecobee API itself is not contacted.
        """
        token_cached = client.has_tokens()
        last_error = None
        if not config.api_key:
            last_error = "No Ecobee API key configured"
        elif not token_cached:
            last_error = "No cached tokens; run the authorize command"

        return HealthStatus(
            status="healthy" if last_error is None else "unhealthy",
            timestamp=datetime.utcnow(),
            version=EXPORTER_VERSION,
            metric_prefix=config.metric_prefix,
            token_cached=token_cached,
            last_error=last_error
        )

    def metrics():
        """
        Prometheus metrics endpoint in text exposition format.

        Every request runs one scrape: a thermostat query (sensors, runtime,
        settings) followed by a summary query (equipment status). A failed
        query truncates the output rather than failing the request.
        """
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    app.add_api_route(
        config.telemetry_path,
        metrics,
        methods=["GET"],
        response_class=PlainTextResponse,
        summary="Prometheus Metrics",
        tags=["Metrics"]
    )

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Exporter starting, serving {config.telemetry_path} with prefix {config.metric_prefix!r}")
        if not client.has_tokens():
            logger.warning("No Ecobee tokens cached; scrapes will fail until authorize is run")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Exporter shutting down")
        client.session.close()

    return app


def serve(config: ExporterConfig):
    import uvicorn
    app = create_app(config)
    uvicorn.run(app, host=config.listen_host, port=config.listen_port, log_config=None)
