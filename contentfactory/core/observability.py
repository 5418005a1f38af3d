"""
Logfire observability configuration for the Content Factory.

Provides tracing for:
- Pipeline runs (one span per run)
- Worker executions (one span per worker)
- Healer sweeps and batch processing

Usage:
    # At process startup (CLI group callback or scheduler worker main)
    from contentfactory.core.observability import setup_logfire
    setup_logfire()

    # In pipeline code
    import logfire

    with logfire.span("worker {worker_id}", worker_id=spec.id, run_id=run_id):
        ...

Environment Variables:
    LOGFIRE_TOKEN: Logfire write token (spans are exported only when set)
    LOGFIRE_ENVIRONMENT: Environment name (development, staging, production)
"""

import os
import logging
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

_logfire_configured = False


def setup_logfire(
    environment: Optional[str] = None,
    service_name: str = "contentfactory"
) -> bool:
    """
    Configure Logfire for observability.

    Spans are always recorded locally; they are only exported when
    LOGFIRE_TOKEN is present.

    Args:
        environment: Environment name (or LOGFIRE_ENVIRONMENT env var)
        service_name: Service name for tracing

    Returns:
        True if spans will be exported, False if running local-only
    """
    global _logfire_configured

    token = os.environ.get("LOGFIRE_TOKEN")

    if _logfire_configured:
        logger.debug("Logfire already configured")
        return bool(token)

    env = environment or os.environ.get("LOGFIRE_ENVIRONMENT", "development")

    logfire.configure(
        token=token or None,
        service_name=service_name,
        environment=env,
        send_to_logfire="if-token-present",
        console=False,
    )
    logfire.instrument_pydantic()

    _logfire_configured = True
    if token:
        logger.info(f"Logfire configured: environment={env}")
    else:
        logger.info("LOGFIRE_TOKEN not set, spans are recorded locally only")
    return bool(token)
