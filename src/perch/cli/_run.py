"""``perch run`` — serve an app.

Any startup-fatal error (unimportable app, bad configuration, broken
template, unavailable port) prints one diagnostic line to stderr and
exits with status 1.
"""

import argparse
import logging
import sys
from typing import NoReturn

from perch.cli._resolve import resolve_app
from perch.errors import ConfigurationError, StartupError
from perch.server.logs import configure_logging

logger = logging.getLogger("perch.server")


def _fail(exc: BaseException) -> NoReturn:
    print(f"Error: {exc}", file=sys.stderr)
    raise SystemExit(1) from exc


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it until interrupted."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        _fail(exc)

    try:
        configure_logging(args.log_level or app.config.log_level)
    except ValueError as exc:
        _fail(exc)

    try:
        app.run(
            args.host,
            args.port,
            app_path=args.app if app.config.debug else None,
        )
    except (StartupError, ConfigurationError) as exc:
        logger.error("Startup failed: %s", exc)
        _fail(exc)
