"""Run the gateway under uvicorn: ``python -m ccip_gateway``."""

from __future__ import annotations

import os

import uvicorn

from .process import create_app


def main() -> None:
    app = create_app()
    uvicorn.run(
        app,
        host=os.getenv("GATEWAY_HOST", "0.0.0.0"),
        port=int(os.getenv("GATEWAY_PORT", "8787")),
        log_level=os.getenv("GATEWAY_LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":  # pragma: no cover
    main()
