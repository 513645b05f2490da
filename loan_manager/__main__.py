"""Run the API with uvicorn: `python -m loan_manager`."""

import uvicorn

from loan_manager.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "loan_manager.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,  # keep the structlog handler installed by create_app
    )


if __name__ == "__main__":
    main()
