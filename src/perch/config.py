"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups. ``AppConfig.from_env()`` builds one from the
process environment and an optional ``.env`` file.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from perch.errors import ConfigurationError

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=3000, template_dir="templates")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    workers: int = 1

    # Templates (None = no template set; Template returns are a 500)
    template_dir: str | Path | None = None
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # Static files (None = not mounted)
    static_dir: str | Path | None = None
    static_url: str = "/static"
    static_cache_control: str = "public, max-age=3600"

    # Middleware
    default_middleware: bool = True
    trusted_proxy_headers: tuple[str, ...] = ()
    request_id_header: str = "X-Request-ID"

    # Errors: surface render error text in 500 bodies (development scaffold)
    expose_errors: bool = True

    # Logging
    log_level: str = "info"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        env_file: str | Path | None = ".env",
        **defaults: Any,
    ) -> AppConfig:
        """Build a config from environment variables.

        *defaults* are keyword overrides applied first; environment values
        win over them. Values from *env_file* (when it exists) are used only
        for keys the environment does not set.

        Recognised variables: ``HOST``, ``PORT``, ``DEBUG``, ``WORKERS``,
        ``TEMPLATE_DIR``, ``STATIC_DIR``, ``STATIC_URL``,
        ``TRUSTED_PROXY_HEADERS`` (comma-separated), ``EXPOSE_ERRORS``,
        ``LOG_LEVEL``.

        Raises:
            ConfigurationError: If a value cannot be parsed or a default
                names an unknown field.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(defaults) - known
        if unknown:
            msg = f"Unknown AppConfig field(s): {', '.join(sorted(unknown))}"
            raise ConfigurationError(msg)

        values: dict[str, str] = {}
        if env_file is not None and Path(env_file).is_file():
            values.update(
                {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            )
        values.update(os.environ if environ is None else environ)

        kwargs: dict[str, Any] = dict(defaults)
        if "HOST" in values:
            kwargs["host"] = values["HOST"]
        if values.get("PORT"):
            kwargs["port"] = _parse_int("PORT", values["PORT"])
        if "DEBUG" in values:
            kwargs["debug"] = _parse_bool("DEBUG", values["DEBUG"])
        if values.get("WORKERS"):
            kwargs["workers"] = _parse_int("WORKERS", values["WORKERS"])
        if values.get("TEMPLATE_DIR"):
            kwargs["template_dir"] = values["TEMPLATE_DIR"]
        if values.get("STATIC_DIR"):
            kwargs["static_dir"] = values["STATIC_DIR"]
        if values.get("STATIC_URL"):
            kwargs["static_url"] = values["STATIC_URL"]
        if "TRUSTED_PROXY_HEADERS" in values:
            kwargs["trusted_proxy_headers"] = tuple(
                h.strip() for h in values["TRUSTED_PROXY_HEADERS"].split(",") if h.strip()
            )
        if "EXPOSE_ERRORS" in values:
            kwargs["expose_errors"] = _parse_bool("EXPOSE_ERRORS", values["EXPOSE_ERRORS"])
        if values.get("LOG_LEVEL"):
            kwargs["log_level"] = _parse_log_level(values["LOG_LEVEL"])

        return cls(**kwargs)


def _parse_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from None
    if name == "PORT" and not 0 <= value <= 65535:
        msg = f"PORT must be between 0 and 65535, got {value}"
        raise ConfigurationError(msg)
    return value


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    msg = f"{name} must be a boolean (true/false/1/0), got {raw!r}"
    raise ConfigurationError(msg)


def _parse_log_level(raw: str) -> str:
    level = raw.strip().lower()
    if level not in LOG_LEVELS:
        msg = f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {raw!r}"
        raise ConfigurationError(msg)
    return level
