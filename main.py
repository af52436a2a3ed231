import asyncio
import sys

import uvicorn

from elitetime.core.config import settings
from elitetime.main import app

HTTP_PORT = 3000


def _server(port: int) -> uvicorn.Server:
    return uvicorn.Server(uvicorn.Config(app, host="0.0.0.0", port=port, reload=False))


def run_http():
    """Run the HTTP API (websocket included) on port 3000"""
    print(f"Starting HTTP server on port {HTTP_PORT}...")
    _server(HTTP_PORT).run()


def run_socket():
    """Run the same application on SOCKET_PORT for websocket clients"""
    print(f"Starting realtime server on port {settings.SOCKET_PORT}...")
    _server(settings.SOCKET_PORT).run()


async def _serve_both():
    # One process and one event loop, so both ports share the realtime hub
    await asyncio.gather(_server(HTTP_PORT).serve(), _server(settings.SOCKET_PORT).serve())


if __name__ == "__main__":
    if "--http-only" in sys.argv:
        run_http()
    elif "--socket-only" in sys.argv:
        run_socket()
    else:
        print(f"Starting servers in DUAL mode (HTTP {HTTP_PORT} + realtime {settings.SOCKET_PORT})...")
        asyncio.run(_serve_both())
