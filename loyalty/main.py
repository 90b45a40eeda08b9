import uvicorn
from fastapi import FastAPI

from loyalty.api.routes.health import router as health_router
from loyalty.core.config import get_settings
from loyalty.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Marketplace Loyalty Service",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
    )
    app.include_router(health_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "loyalty.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
