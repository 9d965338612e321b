import socket

import uvicorn

from studydeck import app
from studydeck.config import settings


def pick_port() -> int:
    """Use the configured port, or ask the OS for a free one."""
    if settings.port:
        return settings.port
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


if __name__ == "__main__":
    port = pick_port()
    print(f"PORT={port}", flush=True)
    uvicorn.run(app, host=settings.host, port=port, log_level=settings.log_level)
