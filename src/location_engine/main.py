"""Entrypoint: run the Location Reliability Engine server."""

import uvicorn

from location_engine.api.app import create_app
from location_engine.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
