"""Run the settings service with Granian.

Usage:
    python -m blogroll_sync
    blogroll-sync

HOST (default 0.0.0.0) and PORT (default 8788) pick the listen address.
"""

import os

from granian import Granian
from granian.constants import Interfaces


def run() -> None:
    server = Granian(
        "blogroll_sync.main:app",
        address=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8788")),
        interface=Interfaces.ASGI,
        log_access=os.getenv("ACCESS_LOG", "false").lower() == "true",
    )
    server.serve()


if __name__ == "__main__":
    run()
