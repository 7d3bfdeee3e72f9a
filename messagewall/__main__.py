"""Run the API with uvicorn: ``python -m messagewall``."""

import uvicorn

from messagewall.config import get_settings


def main() -> None:
    settings = get_settings()
    # log_config=None keeps the JSON logging set up by create_app
    uvicorn.run(
        "messagewall.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
