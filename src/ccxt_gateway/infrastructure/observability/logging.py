"""
Structured logging infrastructure for ccxt-gateway.
Provides consistent, machine-readable logs across all components.

Log Structure:
    {
        "app": "ccxt-gateway",          # Application identifier
        "layer": "adapter",             # Architectural layer
        "component": "default-adapter", # Specific component
        "module": "...",                # Python module (optional)
        "exchange": "kucoin",           # Domain context
        "event": "network_error",       # What happened
        ...
    }

Architectural Layers:
    - infrastructure: Cross-cutting (config, client construction)
    - normalization: Precision reconciliation & canonical formatters
    - adapter: Connector calls & error wrapping (default adapter)
    - exchange: Per-exchange facade (order cache, error rules, history)
    - api: Transport layer consuming the facade (outside this package)
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict

# Define valid architectural layers
Layer = Literal["infrastructure", "normalization", "adapter", "exchange", "api"]


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application-wide context to every log entry.

    Lets the gateway logs be filtered apart from other services writing
    to the same aggregator.
    """
    event_dict["app"] = "ccxt-gateway"
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Add severity level for cloud logging compatibility.
    Maps Python log levels to standard severity levels.
    """
    level = event_dict.get("level")
    if level:
        severity_map = {
            "debug": "DEBUG",
            "info": "INFO",
            "warning": "WARNING",
            "error": "ERROR",
            "critical": "CRITICAL",
        }
        event_dict["severity"] = severity_map.get(level, "INFO")
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structured logging for the gateway.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON. If False, use human-readable format (dev mode).
        include_timestamp: Whether to include ISO timestamps in logs

    Usage:
        >>> from ccxt_gateway.infrastructure.observability import setup_logging
        >>> setup_logging(level="DEBUG", json_logs=True)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance with architectural context.

    Args:
        name: Logger name (typically __name__ of the calling module)
        layer: Architectural layer (infrastructure, adapter, exchange, etc.)
        component: Specific component within the layer
        **initial_context: Additional context key-value pairs to bind to logger

    Returns:
        Configured structlog logger with bound context

    Usage:
        >>> log = get_logger(
        ...     __name__,
        ...     layer="adapter",
        ...     component="default-adapter",
        ...     exchange="kucoin"
        ... )
        >>> log.info("pairs_loaded", count=412)
    """
    logger = structlog.get_logger(name)

    context = {}

    if layer:
        context["layer"] = layer

    if component:
        context["component"] = component

    if name:
        context["module"] = name

    context.update(initial_context)

    if context:
        logger = logger.bind(**context)

    return logger


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for infrastructure layer (config, client construction).

    Usage:
        >>> log = get_infrastructure_logger("config-loader")
        >>> log.info("config_loaded", exchanges=3)
    """
    return get_logger(
        "infrastructure",
        layer="infrastructure",
        component=component,
        **context,
    )


def get_normalization_logger(
    component: str,
    exchange: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger usable as a diagnostics sink for the formatters.

    Usage:
        >>> log = get_normalization_logger("precision", exchange="okx")
        >>> log.warning("invalid_precision", value=12)
    """
    ctx = {}
    if exchange:
        ctx["exchange"] = exchange
    ctx.update(context)

    return get_logger(
        "normalization",
        layer="normalization",
        component=component,
        **ctx,
    )


def get_adapter_logger(
    component: str,
    exchange: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for adapter layer (connector calls).

    Args:
        component: Component name (e.g., "default-adapter", "ccxt-connector")
        exchange: Exchange id (e.g., "kucoin", "okx") - optional
        **context: Additional context

    Usage:
        >>> log = get_adapter_logger("default-adapter", exchange="kucoin")
        >>> log.info("connector_call", method="fetch_trades")
    """
    ctx = {}
    if exchange:
        ctx["exchange"] = exchange
    ctx.update(context)

    return get_logger(
        "adapter",
        layer="adapter",
        component=component,
        **ctx,
    )


def get_exchange_logger(
    exchange: str,
    component: str = "exchange-facade",
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for the exchange facade layer.

    Usage:
        >>> log = get_exchange_logger("okx")
        >>> log.info("closed_orders_merged", windows=7, orders=12)
    """
    return get_logger(
        "exchange",
        layer="exchange",
        component=component,
        exchange=exchange,
        **context,
    )
