"""Run the landing-page server: ``python -m app``.

Binds to HOST/PORT from the environment (default 127.0.0.1:4173).
"""

import uvicorn

from app.core.config import settings


def main() -> None:
    uvicorn.run(
        "app.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log.level.lower(),
        access_log=settings.app.debug,
    )


if __name__ == "__main__":
    main()
