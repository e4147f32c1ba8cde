import uvicorn

from signal_gateway.core.app_factory import create_app
from signal_gateway.core.config import settings

app = create_app()


def run() -> None:
    """Console entry point: serve the gateway with uvicorn."""
    uvicorn.run(
        "signal_gateway.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
