"""
tezedge_stacks.api.__main__

Entrypoint for `python -m tezedge_stacks.api` (same as `tezedge-stacks serve`).
"""

from __future__ import annotations

import uvicorn

from tezedge_stacks.api.app import create_app
from tezedge_stacks.settings import Settings, get_settings


def serve(settings: Settings) -> None:
    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


def main() -> None:
    serve(get_settings())


if __name__ == "__main__":
    main()
