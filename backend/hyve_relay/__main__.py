import logging

import uvicorn

from .config import load_settings
from .main import create_app


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("hyve_relay.server").info(
        "Starting relay on http://%s:%d", settings.host, settings.port
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
