from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.api.deps import get_scheduler
from portal.api.v1 import routes
from portal.core.config import settings
from portal.core.logging_config import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate()
    scheduler = get_scheduler()
    scheduler.start()
    logger.info(f"Portal started, deadline sweep every {settings.SWEEP_INTERVAL_SECONDS}s in {settings.TIMEZONE}")
    yield
    await scheduler.stop()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-User-Name", "X-User-Email"],
)

app.include_router(routes.router)
