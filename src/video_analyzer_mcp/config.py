"""Server configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

VALID_SCHEMA_VARIANTS = {"chapters", "full", "brand", "evaluation"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_PROXY_BASE = "https://api.allorigins.win/raw"


def _is_env_placeholder(value: str) -> bool:
    """Return True when *value* looks like an unresolved shell placeholder."""
    if value.startswith("${") and value.endswith("}"):
        inner = value[2:-1].strip()
        if ":-" in inner:
            inner = inner.split(":-", 1)[0].strip()
        return bool(inner) and all(ch.isalnum() or ch == "_" for ch in inner)
    if value.startswith("$"):
        inner = value[1:].strip()
        return bool(inner) and all(ch.isalnum() or ch == "_" for ch in inner)
    return False


def _normalize_proxy_base(raw: str | None) -> str:
    """Normalize ANALYZER_PROXY_BASE from env.

    Unset means the public default intermediary. An explicit empty string
    or ``none`` disables the intermediary so URLs are fetched directly.
    Unresolved placeholder values (``${ANALYZER_PROXY_BASE}``) count as unset.
    """
    if raw is None:
        return DEFAULT_PROXY_BASE
    value = raw.strip()
    if _is_env_placeholder(value):
        return DEFAULT_PROXY_BASE
    if value.lower() in ("", "none", "off"):
        return ""
    return value.rstrip("?")


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``GEMINI_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


def _optional_float(raw: str) -> float | None:
    raw = raw.strip()
    return float(raw) if raw else None


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    default_model: str = Field(default="gemini-2.5-flash")
    thinking_budget: int = Field(default=0)
    default_temperature: float | None = Field(default=None)
    output_language: str = Field(default="Korean")
    schema_variant: str = Field(default="full")
    poll_interval: float = Field(default=2.0)
    poll_timeout: float = Field(default=0.0)
    proxy_base: str = Field(default=DEFAULT_PROXY_BASE)
    fetch_timeout: float = Field(default=120.0)
    thumbnail_width: int = Field(default=480)
    log_level: str = Field(default="INFO")
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="video-analyzer-mcp")

    @field_validator("schema_variant")
    @classmethod
    def validate_schema_variant(cls, value: str) -> str:
        variant = value.strip().lower()
        if variant not in VALID_SCHEMA_VARIANTS:
            allowed = ", ".join(sorted(VALID_SCHEMA_VARIANTS))
            raise ValueError(f"Invalid schema variant '{value}'. Allowed: {allowed}")
        return variant

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in VALID_LOG_LEVELS:
            allowed = ", ".join(sorted(VALID_LOG_LEVELS))
            raise ValueError(f"Invalid log level '{value}'. Allowed: {allowed}")
        return level

    @field_validator("poll_interval", "fetch_timeout")
    @classmethod
    def validate_positive_delays(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Interval and timeout values must be > 0")
        return value

    @field_validator("poll_timeout")
    @classmethod
    def validate_poll_timeout(cls, value: float) -> float:
        if value < 0:
            raise ValueError("poll_timeout must be >= 0 (0 disables the deadline)")
        return value

    @field_validator("thinking_budget")
    @classmethod
    def validate_thinking_budget(cls, value: int) -> int:
        # -1 asks the model to pick its own budget
        if value < -1:
            raise ValueError("thinking_budget must be >= -1")
        return value

    @field_validator("thumbnail_width")
    @classmethod
    def validate_thumbnail_width(cls, value: int) -> int:
        if value < 16:
            raise ValueError("thumbnail_width must be >= 16")
        return value

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            default_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            thinking_budget=int(os.getenv("GEMINI_THINKING_BUDGET", "0")),
            default_temperature=_optional_float(os.getenv("GEMINI_TEMPERATURE", "")),
            output_language=os.getenv("ANALYZER_OUTPUT_LANGUAGE", "Korean"),
            schema_variant=os.getenv("ANALYZER_SCHEMA_VARIANT", "full"),
            poll_interval=float(os.getenv("ANALYZER_POLL_INTERVAL", "2.0")),
            poll_timeout=float(os.getenv("ANALYZER_POLL_TIMEOUT", "0")),
            proxy_base=_normalize_proxy_base(os.getenv("ANALYZER_PROXY_BASE")),
            fetch_timeout=float(os.getenv("ANALYZER_FETCH_TIMEOUT", "120")),
            thumbnail_width=int(os.getenv("ANALYZER_THUMBNAIL_WIDTH", "480")),
            log_level=os.getenv("ANALYZER_LOG_LEVEL", "INFO"),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("GEMINI_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "video-analyzer-mcp"),
        )


# Singleton, initialised on first access
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/video-analyzer-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by tests and the MCP tools)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
