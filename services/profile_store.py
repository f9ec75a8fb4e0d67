import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ExternalUnavailable
from models.matrimony_profile import MatrimonyProfile
from schemas.matrimony import BrowseFilters

logger = logging.getLogger(__name__)


@dataclass
class PaymentRecord:
    amount: int
    order_id: str
    payment_id: str
    signature: str
    paid_at: datetime


class SqlAlchemyProfileStore:
    """
    Хранилище анкет поверх AsyncSession.

    Каждый изменяющий метод сам делает commit. Ошибки базы превращаются
    в ExternalUnavailable, чтобы сервис не знал про SQLAlchemy.
    После ошибки сессия откатывается, и все загруженные анкеты устаревают:
    их нужно читать заново через get().
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, action: str, exc: Exception):
        await self.db.rollback()
        logger.error("Profile store failed to %s: %s", action, exc)
        raise ExternalUnavailable(f"Database unavailable: failed to {action}") from exc

    async def get(self, profile_id: int) -> Optional[MatrimonyProfile]:
        try:
            return await self.db.get(MatrimonyProfile, profile_id, populate_existing=True)
        except SQLAlchemyError as exc:
            await self._fail("load profile", exc)

    async def find_for_owner(self, owner_id: int) -> List[MatrimonyProfile]:
        stmt = (
            select(MatrimonyProfile)
            .where(MatrimonyProfile.owner_id == owner_id)
            .order_by(MatrimonyProfile.created_at.desc())
        )
        try:
            return list((await self.db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            await self._fail("list owner profiles", exc)

    async def owner_has_paid_profile(self, owner_id: int) -> bool:
        stmt = (
            select(MatrimonyProfile.id)
            .where(MatrimonyProfile.owner_id == owner_id, MatrimonyProfile.is_paid.is_(True))
            .limit(1)
        )
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none() is not None
        except SQLAlchemyError as exc:
            await self._fail("check paid profiles", exc)

    async def find_discoverable(self, filters: BrowseFilters) -> Tuple[List[MatrimonyProfile], int]:
        conditions = [
            MatrimonyProfile.is_approved.is_(True),
            MatrimonyProfile.is_completed.is_(False),
            MatrimonyProfile.is_hidden.is_(False),
        ]
        if filters.gender:
            conditions.append(MatrimonyProfile.gender == filters.gender)
        if filters.min_age is not None:
            conditions.append(MatrimonyProfile.age >= filters.min_age)
        if filters.max_age is not None:
            conditions.append(MatrimonyProfile.age <= filters.max_age)
        if filters.marital_status:
            conditions.append(MatrimonyProfile.marital_status == filters.marital_status)

        stmt = (
            select(MatrimonyProfile)
            .where(*conditions)
            .order_by(MatrimonyProfile.created_at.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        count_stmt = select(func.count(MatrimonyProfile.id)).where(*conditions)
        try:
            items = list((await self.db.execute(stmt)).scalars().all())
            total = (await self.db.execute(count_stmt)).scalar_one()
        except SQLAlchemyError as exc:
            await self._fail("browse profiles", exc)
        return items, total

    async def find_pending(self) -> List[MatrimonyProfile]:
        stmt = (
            select(MatrimonyProfile)
            .where(MatrimonyProfile.is_approved.is_(False))
            .order_by(MatrimonyProfile.created_at.desc())
        )
        try:
            return list((await self.db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            await self._fail("list pending profiles", exc)

    async def find_due_for_purge(self, now: datetime) -> List[MatrimonyProfile]:
        stmt = select(MatrimonyProfile).where(
            MatrimonyProfile.is_completed.is_(True),
            MatrimonyProfile.scheduled_deletion_at <= now,
        )
        try:
            return list((await self.db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            await self._fail("find profiles due for purge", exc)

    async def insert(self, profile: MatrimonyProfile) -> MatrimonyProfile:
        try:
            self.db.add(profile)
            await self.db.commit()
            await self.db.refresh(profile)
        except SQLAlchemyError as exc:
            await self._fail("insert profile", exc)
        return profile

    async def save(self, profile: MatrimonyProfile) -> MatrimonyProfile:
        try:
            self.db.add(profile)
            await self.db.commit()
            await self.db.refresh(profile)
        except SQLAlchemyError as exc:
            await self._fail("save profile", exc)
        return profile

    async def mark_paid(self, profile_id: int, payment: PaymentRecord) -> bool:
        """
        Условный UPDATE ... WHERE is_paid = false: из двух одновременных
        колбэков изменит строку только один. Возвращает, досталась ли оплата нам.
        """
        stmt = (
            update(MatrimonyProfile)
            .where(MatrimonyProfile.id == profile_id, MatrimonyProfile.is_paid.is_(False))
            .values(
                is_paid=True,
                is_approved=True,
                payment_amount=payment.amount,
                payment_order_id=payment.order_id,
                payment_id=payment.payment_id,
                payment_signature=payment.signature,
                paid_at=payment.paid_at,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self._fail("record payment", exc)
        return result.rowcount == 1

    async def increment_view_count(self, profile_id: int) -> None:
        stmt = (
            update(MatrimonyProfile)
            .where(MatrimonyProfile.id == profile_id)
            .values(view_count=MatrimonyProfile.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self._fail("increment view count", exc)

    async def delete(self, profile_id: int) -> None:
        try:
            await self.db.execute(
                delete(MatrimonyProfile)
                .where(MatrimonyProfile.id == profile_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self._fail("delete profile", exc)
