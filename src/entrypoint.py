from __future__ import annotations

import logging

import uvicorn

from .index import app
from .utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging()
    port = app.state.settings.port
    logger.info(f"Server running at http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=None)


if __name__ == "__main__":
    main()
