"""
Serve the codebox API: ``python -m codebox``.
"""

import uvicorn

from codebox.config import get_config
from codebox.logging_setup import setup_logging


def main() -> None:
    config = get_config()
    setup_logging(config.log_level)
    uvicorn.run("codebox.api:app", host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
