from __future__ import annotations

import uvicorn

from experiment_tracker.api.app import app
from experiment_tracker.config.settings import settings


def main() -> None:
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
