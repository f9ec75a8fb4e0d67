from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock
from core.config import settings
from core.database import get_db
from services.matrimony_lifecycle import ProfileLifecycle
from services.payment_verifier import PaymentVerifier
from services.profile_store import SqlAlchemyProfileStore


def build_lifecycle(db: AsyncSession, media_host, verifier: PaymentVerifier, notifier=None) -> ProfileLifecycle:
    """Собирает сервис анкет из явных зависимостей: сессия, медиа, подпись платежей, почта, часы."""
    return ProfileLifecycle(
        store=SqlAlchemyProfileStore(db),
        media_host=media_host,
        verifier=verifier,
        clock=Clock(settings.TIMEZONE),
        grace_period_days=settings.MATRIMONY_DELETION_GRACE_DAYS,
        matrimony_fee=settings.MATRIMONY_FEE,
        notifier=notifier,
    )


# Клиенты внешних сервисов создаются один раз при старте приложения (main.py)
def get_media_host(request: Request):
    return request.app.state.media_host


def get_payment_verifier(request: Request) -> PaymentVerifier:
    return request.app.state.payment_verifier


def get_notifier(request: Request):
    return request.app.state.notifier


async def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    media_host=Depends(get_media_host),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
    notifier=Depends(get_notifier),
) -> ProfileLifecycle:
    return build_lifecycle(db, media_host, verifier, notifier)
