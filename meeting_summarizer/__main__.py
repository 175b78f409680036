"""Module entrypoint to run the API with uvicorn.

Example:
    MEETING_PORT=8080 python -m meeting_summarizer
"""

from __future__ import annotations

import uvicorn
from dotenv import load_dotenv
from uvicorn.config import Config

from meeting_summarizer.config import ServiceSettings, configure_logging


def main() -> None:
    load_dotenv()
    settings = ServiceSettings.from_env()
    configure_logging(settings.log_level)
    config = Config(
        app="meeting_summarizer.api.server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level,
    )
    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    main()
