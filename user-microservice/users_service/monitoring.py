"""Prometheus metrics instrumentation."""

from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI


def setup_monitoring(app: FastAPI) -> None:
    """Instrument request handling and expose /metrics (gated by ENABLE_METRICS)."""
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="users_http_requests_inprogress",
        inprogress_labels=True,
    )
    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
