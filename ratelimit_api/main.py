import uvicorn

from ratelimit_api.core.app_factory import create_app
from ratelimit_api.core.config import settings

app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""

    uvicorn.run(
        "ratelimit_api.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
        # X-Forwarded-For is resolved by the rate limiter's own trust policy
        proxy_headers=False,
    )


if __name__ == "__main__":
    run()
