"""Run the API server: ``python -m codechat``."""

import uvicorn

from codechat.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "codechat.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
