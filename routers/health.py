# routers/health.py
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health", summary="Health check")
async def healthcheck(request: Request):
    scheduler = getattr(request.app.state, "cleanup_scheduler", None)
    verifier = getattr(request.app.state, "payment_verifier", None)
    notifier = getattr(request.app.state, "notifier", None)
    return {
        "status": "ok",
        "cleanup_scheduler": bool(scheduler and scheduler.running),
        "payments_configured": bool(verifier and verifier.configured),
        "email_configured": bool(notifier and notifier.configured),
    }
