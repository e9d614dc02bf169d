import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import redis.asyncio as aioredis

from .core.config import get_settings
from .core.db import AsyncSessionLocal, Base, engine
from .core.responses import ErrorCodes, error_response
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .public_booking import router as public_booking_router
from .scheduling.cache import ScheduleCache
from .scheduling.errors import SchedulingError
from .seed import seed_initial_data


settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCodes.VALIDATION_ERROR: 422,
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.SLOT_UNAVAILABLE: 409,
    ErrorCodes.BOOKING_CONFLICT: 409,
    ErrorCodes.CONFIGURATION_ERROR: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_on_startup:
        async with AsyncSessionLocal() as session:
            await seed_initial_data(session)
    redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    app.state.schedule_cache = ScheduleCache(redis)
    yield
    await redis.aclose()
    await engine.dispose()


app = FastAPI(title="Salon Booking Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    status_code = ERROR_STATUS.get(exc.code, 400)
    if status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=error_response(exc.code, exc.message, exc.details),
    )


app.include_router(public_booking_router)


@app.get("/health")
async def healthcheck():
    return {"ok": True}
