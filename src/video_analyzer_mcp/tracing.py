"""Optional MLflow tracing for analysis runs.

When ``mlflow-tracing`` is installed and a tracking URI is configured,
an analysis shows up as one trace:

- ``media_analyze`` is the ``TOOL`` root span (``trace`` decorator);
- each workflow phase is a ``CHAIN`` child span (``stage_span``);
- every Gemini ``generate_content`` call is a ``CHAT_MODEL`` leaf,
  recorded by ``mlflow.gemini.autolog()``.

Without mlflow every helper here is a no-op.

Env vars (all optional):
    MLFLOW_TRACKING_URI: Where to store traces. Empty = tracing disabled.
    MLFLOW_EXPERIMENT_NAME: Experiment name (default ``video-analyzer-mcp``).
    GEMINI_TRACING_ENABLED: Set to ``"false"`` to force-disable even with a URI.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False


def is_enabled() -> bool:
    """True when mlflow is importable and the config enables tracing."""
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """Wrap a tool entrypoint in an mlflow span; identity when tracing is off."""
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type, attributes=attributes)


@contextmanager
def stage_span(name: str, **attributes: Any) -> Iterator[None]:
    """Record one workflow phase as a ``CHAIN`` span under the active trace."""
    if not is_enabled():
        yield
        return
    with mlflow.start_span(name=name, span_type="CHAIN", attributes=attributes):
        yield


def setup() -> None:
    """Point MLflow at the configured server and turn on Gemini autologging.

    A failure here is logged and the server starts without tracing.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    try:
        mlflow.set_tracking_uri(cfg.mlflow_tracking_uri)
        mlflow.set_experiment(cfg.mlflow_experiment_name)
        mlflow.gemini.autolog()
    except Exception:
        logger.warning("MLflow tracing setup failed, continuing without tracing", exc_info=True)
        return
    logger.info(
        "MLflow tracing on (uri=%s, experiment=%s)",
        cfg.mlflow_tracking_uri, cfg.mlflow_experiment_name,
    )


def shutdown() -> None:
    """Flush traces still queued for async export."""
    if not is_enabled():
        return
    try:
        mlflow.flush_trace_async_logging()
    except Exception:
        logger.warning("MLflow trace flush failed", exc_info=True)
