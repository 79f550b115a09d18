from __future__ import annotations

import uvicorn

from reasigna.config import get_settings, load_environment


def main() -> None:
    load_environment()
    settings = get_settings()
    uvicorn.run("reasigna.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
