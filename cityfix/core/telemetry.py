"""
OpenTelemetry instrumentation for FastAPI and PyMongo

Spans are created locally; exporting them is left to whatever tracer
provider the deployment configures.
"""

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor

from cityfix.core.logger import logger


def instrument_app(app: FastAPI) -> None:
    """
    Instrument a FastAPI application and the MongoDB driver.

    Failures are logged and ignored; tracing is never required to serve.
    """
    try:
        FastAPIInstrumentor.instrument_app(app)

        instrumentor = PymongoInstrumentor()
        if not instrumentor.is_instrumented_by_opentelemetry:
            instrumentor.instrument()

        logger.info("OpenTelemetry instrumentation complete")
    except Exception as e:
        logger.error(f"Failed to instrument application: {e}", error=e)
