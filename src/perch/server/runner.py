"""Start a pounce ASGI server with a live perch App.

Pounce's ``run()`` takes an import string, but perch has a live ``App``
object, so ``pounce.Server`` is used directly with the ASGI callable.
"""

from __future__ import annotations

import logging
import socket

from perch.errors import BindError

logger = logging.getLogger("perch.server")


def ensure_bindable(host: str, port: int) -> None:
    """Bind and release *host*:*port* once so a taken port fails early.

    Raises:
        BindError: If the address cannot be bound.
    """
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
    except socket.gaierror as exc:
        msg = f"Cannot resolve listen address {host!r}: {exc}"
        raise BindError(msg) from exc

    family, socktype, proto, _, address = infos[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(address)
    except OSError as exc:
        msg = f"Cannot bind {host}:{port}: {exc.strerror or exc}"
        raise BindError(msg) from exc
    finally:
        sock.close()


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
    app_path: str | None = None,
    log_level: str = "info",
) -> None:
    """Serve *app* on *host*:*port* until interrupted.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count. Forced to 1 when *reload* is on.
        reload: Restart on source changes (debug mode).
        app_path: Optional ``"module:attribute"`` import string used by
            pounce to reimport the app on reload.
        log_level: pounce log level.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1 if reload else workers,
        reload=reload,
        log_level=log_level,
    )
    logger.info("perch listening on http://%s:%d", host, port)
    server = Server(config, app, app_path=app_path)
    server.run()
