# src/libs/lookup-common/lookup_common/logging_utils.py
import logging
import os
import sys
import uuid
from contextvars import ContextVar
from pythonjsonlogger import jsonlogger

# Shared context variables carried into every log record of a request or fetch.
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="<not-set>")
request_id_var: ContextVar[str] = ContextVar("request_id", default="<not-set>")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="<not-set>")
lookup_entity_var: ContextVar[str] = ContextVar("lookup_entity", default="<none>")

class CorrelationIdFilter(logging.Filter):
    """
    A logging filter that injects the current correlation ID and the lookup
    entity being fetched from ContextVars into the log record.
    """
    def filter(self, record):
        """
        Attaches the context identifiers to the log record.

        Args:
            record: The log record to be filtered.

        Returns:
            True to allow the record to be processed.
        """
        record.correlation_id = correlation_id_var.get()
        record.request_id = request_id_var.get()
        record.trace_id = trace_id_var.get()
        record.lookup_entity = lookup_entity_var.get()
        record.service = os.getenv("SERVICE_NAME", "lookup-gateway-service")
        record.environment = os.getenv("ENVIRONMENT", "local")
        return True

def setup_logging(level: int = logging.INFO):
    """
    Configures the root logger for standardized, correlation-ID-aware,
    structured JSON logging. All loggers of the application (including
    libraries) inherit this configuration.
    """
    root_logger = logging.getLogger()

    # Clear any existing handlers to prevent duplicate logs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s %(service)s %(environment)s "
        "%(correlation_id)s %(request_id)s %(trace_id)s %(lookup_entity)s",
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "logger"
        }
    )

    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger.addHandler(handler)

def generate_correlation_id(prefix: str) -> str:
    """
    Generates a new correlation ID with a service-specific prefix.
    Args:
        prefix: A short code for the caller (e.g., 'LKP').
    Returns:
        A formatted correlation ID string.
    """
    return f"{prefix}:{uuid.uuid4()}"
