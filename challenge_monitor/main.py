import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

# Load env before settings are read
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(os.path.dirname(package_dir), ".env"))

from challenge_monitor import __version__
from challenge_monitor.api import admin, challenges, health, metrics, overview, streaks
from challenge_monitor.core.config import settings, validate_config
from challenge_monitor.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from challenge_monitor.core.logging import configure_logging
from challenge_monitor.core.middleware.metrics import MetricsMiddleware
from challenge_monitor.core.middleware.request_id import RequestIdMiddleware

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("challenge_monitor")
    logger.info("Starting challenge monitor...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("challenge_monitor").info("Stopping challenge monitor...")


app = FastAPI(title="Challenge Monitor", version=__version__, lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(challenges.router, tags=["challenges"])
app.include_router(streaks.router, tags=["streaks"])
app.include_router(overview.router, tags=["overview"])
app.include_router(admin.router)
app.include_router(health.router)
app.include_router(metrics.router)


@app.get("/")
def root():
    return {"service": "challenge-monitor", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("challenge_monitor.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
