import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from core.dependencies import get_lifecycle
from core.security import get_admin_user
from models.user import User
from schemas.matrimony import CompleteRequest, MatrimonyProfileRead, SweepReportRead
from services.matrimony_cleanup import run_sweep_once
from services.matrimony_lifecycle import ProfileLifecycle

router = APIRouter(prefix="/admin/matrimony", tags=["Admin"])
logger = logging.getLogger("uvicorn.error")


@router.get(
    "/pending",
    response_model=List[MatrimonyProfileRead],
    summary="Анкеты, ожидающие оплаты или одобрения",
)
async def list_pending(
    admin: User = Depends(get_admin_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_pending()


@router.post(
    "/{profile_id}/approve",
    response_model=MatrimonyProfileRead,
    summary="Одобрить анкету",
)
async def approve_profile(
    profile_id: int,
    admin: User = Depends(get_admin_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.approve(profile_id)


@router.post(
    "/{profile_id}/reject",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Отклонить анкету до одобрения (удаляется сразу, без grace period)",
)
async def reject_profile(
    profile_id: int,
    admin: User = Depends(get_admin_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    await lifecycle.reject(profile_id)
    logger.info("Admin %s rejected matrimony profile %s", admin.id, profile_id)


@router.post(
    "/{profile_id}/complete",
    response_model=MatrimonyProfileRead,
    summary="Отметить, что пара нашлась; анкета будет удалена после grace period",
)
async def complete_profile(
    profile_id: int,
    payload: Optional[CompleteRequest] = None,
    admin: User = Depends(get_admin_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    days = payload.grace_period_days if payload else None
    return await lifecycle.complete(profile_id, days)


@router.delete(
    "/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить анкету вместе с фотографиями",
)
async def delete_profile(
    profile_id: int,
    admin: User = Depends(get_admin_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    await lifecycle.delete(profile_id, admin.id, is_admin=True)


@router.post(
    "/cleanup",
    response_model=SweepReportRead,
    summary="Запустить очистку завершённых анкет вне расписания",
)
async def run_cleanup(
    admin: User = Depends(get_admin_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
) -> SweepReportRead:
    logger.info("Manual matrimony cleanup triggered by admin %s", admin.id)
    report = await run_sweep_once(lifecycle, lifecycle.clock.now())
    return SweepReportRead(purged=report.purged, failed=report.failed)
