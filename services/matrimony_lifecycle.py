"""
Жизненный цикл анкеты знакомств.

Состояние анкеты выводится из флагов (см. MatrimonyProfile.lifecycle_state),
а каждая операция явно проверяет, из каких состояний она допустима:

    AWAITING_PAYMENT --оплата/одобрение--> APPROVED <--скрыть/показать--> HIDDEN
    APPROVED | HIDDEN --завершение--> COMPLETED --очистка--> PURGED
    AWAITING_PAYMENT --отклонение--> REJECTED (анкета удаляется сразу)

Анкеты членов сообщества создаются сразу оплаченными и одобренными.
"""
import logging
from datetime import date
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from core.clock import Clock
from core.errors import (
    AlreadyPaid,
    ExternalUnavailable,
    InvalidTransition,
    NotProfileOwner,
    PaymentInvalid,
    ProfileNotFound,
    ProfileValidationError,
)
from models.matrimony_profile import MatrimonyProfile, ProfileState
from schemas.matrimony import BrowseFilters, MatrimonyProfileCreate, MatrimonyProfileUpdate
from services.notifier import UnconfiguredNotifier
from services.payment_verifier import PaymentVerifier
from services.profile_store import PaymentRecord

logger = logging.getLogger(__name__)

MIN_AGE = 18
DEFAULT_GRACE_PERIOD_DAYS = 14

# Поля, которые нельзя обнулить частичным обновлением
REQUIRED_FIELDS = {
    "full_name", "date_of_birth", "gender", "height", "marital_status", "phone", "email",
    "current_address", "city", "state", "education", "occupation", "photos",
}

Fields = Union[BaseModel, Mapping[str, Any]]


def calculate_age(birthdate: date, today: date) -> int:
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return max(years, 0)


def _parse(schema, fields: Fields):
    if isinstance(fields, schema):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(dict(fields))
    except ValidationError as exc:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
        raise ProfileValidationError("Invalid profile data", errors=errors) from exc


class ProfileLifecycle:

    def __init__(
        self,
        store,
        media_host,
        verifier: PaymentVerifier,
        clock: Clock,
        grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
        matrimony_fee: int = 40000,
        notifier=None,
    ):
        self.store = store
        self.media_host = media_host
        self.verifier = verifier
        self.clock = clock
        self.grace_period_days = grace_period_days
        self.matrimony_fee = matrimony_fee
        self.notifier = notifier or UnconfiguredNotifier()

    # ---------- helpers ----------

    async def _get(self, profile_id: int) -> MatrimonyProfile:
        profile = await self.store.get(profile_id)
        if profile is None:
            raise ProfileNotFound()
        return profile

    @staticmethod
    def _require_owner(profile: MatrimonyProfile, owner_id: int) -> None:
        if profile.owner_id != owner_id:
            raise NotProfileOwner()

    @staticmethod
    def _require_state(profile: MatrimonyProfile, allowed: set, action: str) -> None:
        state = profile.lifecycle_state
        if state not in allowed:
            raise InvalidTransition(f"Cannot {action} a profile in state '{state.value}'")

    def _checked_age(self, birthdate: date) -> int:
        age = calculate_age(birthdate, self.clock.today())
        if age < MIN_AGE:
            raise ProfileValidationError(
                f"Profile owner must be at least {MIN_AGE} years old",
                errors=[{"loc": ["date_of_birth"], "msg": f"age must be >= {MIN_AGE}", "type": "min_age"}],
            )
        return age

    async def _delete_media(self, profile_id: int, media_ids: List[str]) -> None:
        """Удаление фото по возможности: сбой хранилища не мешает удалить запись."""
        try:
            results = await self.media_host.delete_batch(media_ids)
        except ExternalUnavailable as exc:
            logger.warning(
                "Could not delete %d photos of profile %s, leaving orphaned media: %s",
                len(media_ids), profile_id, exc,
            )
            return
        failed = [media_id for media_id, ok in results.items() if not ok]
        if failed:
            logger.warning("Profile %s: %d photos were not deleted: %s", profile_id, len(failed), failed)
        else:
            logger.info("Deleted %d photos for profile %s", len(media_ids), profile_id)

    async def _notify_approved(self, profile: MatrimonyProfile) -> None:
        """Письмо владельцу по возможности: сбой почты не отменяет одобрение."""
        try:
            await self.notifier.profile_approved(profile.email, profile.full_name, profile.id)
        except ExternalUnavailable as exc:
            logger.warning("Could not send approval email for profile %s: %s", profile.id, exc)

    # ---------- reads ----------

    async def get(self, profile_id: int) -> MatrimonyProfile:
        return await self._get(profile_id)

    async def list_mine(self, owner_id: int) -> List[MatrimonyProfile]:
        return await self.store.find_for_owner(owner_id)

    async def list_pending(self) -> List[MatrimonyProfile]:
        return await self.store.find_pending()

    async def browse(self, filters: BrowseFilters) -> Tuple[List[MatrimonyProfile], int]:
        return await self.store.find_discoverable(filters)

    async def record_view(self, profile_id: int) -> bool:
        try:
            await self.store.increment_view_count(profile_id)
        except ExternalUnavailable as exc:
            logger.warning("Failed to count view of profile %s: %s", profile_id, exc)
            return False
        return True

    async def view(self, profile_id: int) -> MatrimonyProfile:
        """
        Карточка анкеты. Каждый просмотр (в том числе владельцем) увеличивает счётчик.

        Анкета перечитывается после счётчика в любом случае: после сбоя
        транзакция откатывается и ранее загруженный объект устаревает.
        """
        await self._get(profile_id)
        await self.record_view(profile_id)
        return await self._get(profile_id)

    # ---------- transitions ----------

    async def create(self, owner_id: int, owner_is_member: bool, fields: Fields) -> MatrimonyProfile:
        payload = _parse(MatrimonyProfileCreate, fields)
        age = self._checked_age(payload.date_of_birth)

        payment_required = not owner_is_member
        profile = MatrimonyProfile(
            **payload.model_dump(),
            owner_id=owner_id,
            age=age,
            payment_required=payment_required,
            # членам сообщества анкета бесплатна и одобряется сразу
            is_paid=not payment_required,
            is_approved=not payment_required,
            is_hidden=False,
            is_completed=False,
            view_count=0,
        )
        profile = await self.store.insert(profile)
        logger.info(
            "Matrimony profile %s created by user %s (auto-approved: %s)",
            profile.id, owner_id, not payment_required,
        )
        return profile

    async def record_payment(
        self,
        profile_id: int,
        order_id: str,
        payment_id: str,
        signature: str,
        amount: Optional[int] = None,
        owner_id: Optional[int] = None,
    ) -> MatrimonyProfile:
        if not self.verifier.configured:
            raise PaymentInvalid("Payment gateway not configured")
        if not self.verifier.verify(order_id, payment_id, signature):
            logger.warning("Invalid payment signature for profile %s (order %s)", profile_id, order_id)
            raise PaymentInvalid()

        profile = await self._get(profile_id)
        if owner_id is not None:
            self._require_owner(profile, owner_id)
        if profile.is_paid:
            raise AlreadyPaid()
        was_approved = profile.is_approved

        record = PaymentRecord(
            amount=self.matrimony_fee if amount is None else amount,
            order_id=order_id,
            payment_id=payment_id,
            signature=signature,
            paid_at=self.clock.now(),
        )
        if not await self.store.mark_paid(profile_id, record):
            # параллельный колбэк успел раньше
            raise AlreadyPaid()

        logger.info("Matrimony payment verified and profile auto-approved: %s", profile_id)
        profile = await self._get(profile_id)
        if not was_approved:
            await self._notify_approved(profile)
        return profile

    async def approve(self, profile_id: int) -> MatrimonyProfile:
        profile = await self._get(profile_id)
        if profile.is_approved:
            return profile
        profile.is_approved = True
        profile = await self.store.save(profile)
        logger.info("Matrimony profile approved: %s", profile_id)
        await self._notify_approved(profile)
        return profile

    async def reject(self, profile_id: int) -> ProfileState:
        profile = await self._get(profile_id)
        self._require_state(profile, {ProfileState.AWAITING_PAYMENT}, "reject")
        await self.purge(profile)
        logger.info("Matrimony profile rejected and deleted: %s", profile_id)
        return ProfileState.REJECTED

    async def hide(self, profile_id: int, owner_id: int) -> MatrimonyProfile:
        return await self._set_hidden(profile_id, owner_id, True)

    async def unhide(self, profile_id: int, owner_id: int) -> MatrimonyProfile:
        return await self._set_hidden(profile_id, owner_id, False)

    async def _set_hidden(self, profile_id: int, owner_id: int, hidden: bool) -> MatrimonyProfile:
        profile = await self._get(profile_id)
        self._require_owner(profile, owner_id)
        # скрывать имеет смысл только одобренную и ещё не завершённую анкету
        self._require_state(
            profile, {ProfileState.APPROVED, ProfileState.HIDDEN}, "hide" if hidden else "unhide",
        )
        profile.is_hidden = hidden
        return await self.store.save(profile)

    async def complete(self, profile_id: int, grace_period_days: Optional[int] = None) -> MatrimonyProfile:
        """
        Пара нашлась: анкета уходит из списка и удаляется через grace period.
        Повторный вызов заново взводит срок удаления.
        """
        profile = await self._get(profile_id)
        self._require_state(
            profile,
            {ProfileState.APPROVED, ProfileState.HIDDEN, ProfileState.COMPLETED},
            "complete",
        )
        days = self.grace_period_days if grace_period_days is None else grace_period_days
        now = self.clock.now()
        profile.is_completed = True
        profile.completed_at = now
        profile.scheduled_deletion_at = self.clock.add_calendar_days(now, days)
        profile = await self.store.save(profile)
        logger.info(
            "Matrimony marked completed, scheduled for deletion at %s: %s",
            profile.scheduled_deletion_at.isoformat(), profile_id,
        )
        return profile

    async def update(self, profile_id: int, owner_id: int, fields: Fields) -> MatrimonyProfile:
        profile = await self._get(profile_id)
        self._require_owner(profile, owner_id)
        payload = _parse(MatrimonyProfileUpdate, fields)
        changes = payload.model_dump(exclude_unset=True)

        nulled = sorted(key for key, value in changes.items() if value is None and key in REQUIRED_FIELDS)
        if nulled:
            raise ProfileValidationError(f"Fields cannot be empty: {', '.join(nulled)}")

        if "date_of_birth" in changes:
            profile.age = self._checked_age(changes["date_of_birth"])

        removed_media: List[str] = []
        if "photos" in changes:
            kept = {photo["media_id"] for photo in changes["photos"]}
            removed_media = [media_id for media_id in profile.media_ids if media_id not in kept]

        for key, value in changes.items():
            setattr(profile, key, value)
        profile = await self.store.save(profile)

        for media_id in removed_media:
            try:
                await self.media_host.delete(media_id)
            except ExternalUnavailable as exc:
                logger.warning("Could not delete replaced photo %s of profile %s: %s", media_id, profile_id, exc)
        return profile

    async def delete(self, profile_id: int, actor_id: int, is_admin: bool = False) -> ProfileState:
        profile = await self._get(profile_id)
        if not is_admin:
            self._require_owner(profile, actor_id)
        await self.purge(profile)
        logger.info(
            "Matrimony profile %s deleted by %s %s",
            profile_id, "admin" if is_admin else "owner", actor_id,
        )
        return ProfileState.PURGED

    async def purge(self, profile: MatrimonyProfile) -> ProfileState:
        return await self.purge_by_id(profile.id, profile.media_ids)

    async def purge_by_id(self, profile_id: int, media_ids: List[str]) -> ProfileState:
        """
        Общая точка удаления для владельца, админа и ночной очистки:
        сначала фото (по возможности), затем запись. Ошибка базы пробрасывается.

        Принимает id и список фото, а не ORM-объект, чтобы очистка могла
        продолжать работу после отката сессии.
        """
        if media_ids:
            await self._delete_media(profile_id, media_ids)
        await self.store.delete(profile_id)
        return ProfileState.PURGED
