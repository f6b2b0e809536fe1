import logging
from typing import Optional

import uvicorn

from deltakit.api.app import create_app
from deltakit.api.components import build_components


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    components = build_components()
    uvicorn.run(
        create_app(components, run_worker=True),
        host=host or components.config.api_host,
        port=port or components.config.api_port,
    )


if __name__ == "__main__":
    run()
