import logging
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.clock import Clock
from core.config import settings
from core.database import AsyncSessionLocal, engine
from core.dependencies import build_lifecycle
from core.errors import MatrimonyError, ProfileValidationError
from models.base import Base
from services.matrimony_cleanup import CleanupScheduler, SweepReport, run_sweep_once
from services.notifier import build_notifier
from services.payment_verifier import PaymentVerifier
from utils.s3 import build_media_host

from routers.matrimony import router as matrimony_router
from routers.admin import router as admin_router
from routers.health import router as health_router

app = FastAPI(
    title="Community Matrimony Backend",
    version="0.1.0",
    description="Анкеты знакомств сообщества: оплата, модерация, доступ к списку и очистка",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} completed in {process_time:.2f} ms"
    )
    return response


@app.exception_handler(MatrimonyError)
async def matrimony_error_handler(request: Request, exc: MatrimonyError):
    content = {"detail": exc.detail}
    if isinstance(exc, ProfileValidationError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(matrimony_router)
app.include_router(admin_router)
app.include_router(health_router)


async def sweep_in_own_session(now: datetime) -> SweepReport:
    # у фоновой очистки своя сессия, не связанная с запросами
    async with AsyncSessionLocal() as session:
        lifecycle = build_lifecycle(
            session, app.state.media_host, app.state.payment_verifier, app.state.notifier,
        )
        return await run_sweep_once(lifecycle, now)


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.media_host = build_media_host()
    app.state.payment_verifier = PaymentVerifier(settings.PAYMENT_KEY_SECRET)
    app.state.notifier = build_notifier()
    app.state.cleanup_scheduler = CleanupScheduler(
        sweep_in_own_session,
        settings.MATRIMONY_CLEANUP_CRON,
        clock=Clock(settings.TIMEZONE),
    )
    if settings.MATRIMONY_CLEANUP_ENABLED:
        app.state.cleanup_scheduler.start()


@app.get("/")
async def root():
    return {"message": "Community Matrimony Backend"}


@app.on_event("shutdown")
async def shutdown():
    await app.state.cleanup_scheduler.stop()
    # Закрываем все соединения пула
    await engine.dispose()
