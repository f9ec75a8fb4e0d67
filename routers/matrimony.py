import math
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from core.dependencies import get_lifecycle
from core.security import get_active_user
from models.user import User
from schemas.matrimony import (
    BrowseFilters,
    Gender,
    MaritalStatus,
    MatrimonyListResponse,
    MatrimonyProfileCreate,
    MatrimonyProfileRead,
    MatrimonyProfileUpdate,
    Pagination,
    PaymentVerifyRequest,
)
from services.access_policy import viewer_can_browse
from services.matrimony_lifecycle import ProfileLifecycle

router = APIRouter(prefix="/matrimony", tags=["matrimony"])


async def require_listing_access(
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
) -> User:
    if not await viewer_can_browse(lifecycle.store, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Become a paid member or pay for a matrimony profile to view listings.",
        )
    return current_user


@router.post(
    "/profiles",
    response_model=MatrimonyProfileRead,
    status_code=status.HTTP_201_CREATED,
    summary="Создать анкету (членам сообщества бесплатно и без модерации)",
)
async def create_profile(
    payload: MatrimonyProfileCreate,
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.create(current_user.id, current_user.is_member, payload)


@router.get(
    "/profiles/my",
    response_model=List[MatrimonyProfileRead],
    summary="Мои анкеты",
)
async def read_my_profiles(
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_mine(current_user.id)


@router.patch(
    "/profiles/my/{profile_id}/hide",
    response_model=MatrimonyProfileRead,
    summary="Скрыть свою анкету из общего списка",
)
async def hide_profile(
    profile_id: int,
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.hide(profile_id, current_user.id)


@router.patch(
    "/profiles/my/{profile_id}/unhide",
    response_model=MatrimonyProfileRead,
    summary="Вернуть свою анкету в общий список",
)
async def unhide_profile(
    profile_id: int,
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.unhide(profile_id, current_user.id)


@router.get(
    "/profiles",
    response_model=MatrimonyListResponse,
    summary="Список анкет (для членов сообщества и оплативших свою анкету)",
)
async def browse_profiles(
    gender: Optional[Gender] = Query(None),
    min_age: Optional[int] = Query(None, ge=18),
    max_age: Optional[int] = Query(None, ge=18),
    marital_status: Optional[MaritalStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: User = Depends(require_listing_access),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
) -> MatrimonyListResponse:
    filters = BrowseFilters(
        gender=gender,
        min_age=min_age,
        max_age=max_age,
        marital_status=marital_status,
        page=page,
        limit=limit,
    )
    profiles, total = await lifecycle.browse(filters)
    return MatrimonyListResponse(
        profiles=[MatrimonyProfileRead.model_validate(p) for p in profiles],
        pagination=Pagination(
            total=total,
            page=filters.page,
            pages=math.ceil(total / filters.limit),
        ),
    )


@router.get(
    "/profiles/{profile_id}",
    response_model=MatrimonyProfileRead,
    summary="Карточка анкеты (каждый просмотр увеличивает счётчик)",
)
async def read_profile(
    profile_id: int,
    viewer: User = Depends(require_listing_access),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.view(profile_id)


@router.patch(
    "/profiles/{profile_id}",
    response_model=MatrimonyProfileRead,
    summary="Обновить свою анкету",
)
async def update_profile(
    profile_id: int,
    payload: MatrimonyProfileUpdate,
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.update(profile_id, current_user.id, payload)


@router.delete(
    "/profiles/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить свою анкету вместе с фотографиями",
)
async def delete_profile(
    profile_id: int,
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    await lifecycle.delete(profile_id, current_user.id)


@router.post(
    "/verify-payment",
    response_model=MatrimonyProfileRead,
    summary="Подтвердить оплату анкеты (колбэк платёжного шлюза)",
)
async def verify_payment(
    payload: PaymentVerifyRequest,
    current_user: User = Depends(get_active_user),
    lifecycle: ProfileLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.record_payment(
        payload.profile_id,
        payload.order_id,
        payload.payment_id,
        payload.signature,
        owner_id=current_user.id,
    )
