# models/matrimony_profile.py
import enum

from sqlalchemy import (
    Column, BigInteger, Integer, String, Date, Text, Boolean, DateTime, ForeignKey, JSON, Index,
)
from sqlalchemy.sql import func

from .base import Base


class ProfileState(str, enum.Enum):
    AWAITING_PAYMENT = "awaiting_payment"
    APPROVED = "approved"
    HIDDEN = "hidden"
    COMPLETED = "completed"
    # терминальные: записи в базе уже нет
    PURGED = "purged"
    REJECTED = "rejected"


def is_discoverable(is_approved: bool, is_completed: bool, is_hidden: bool) -> bool:
    """Анкета видна в общем списке только одобренной, незавершённой и нескрытой."""
    return bool(is_approved) and not is_completed and not is_hidden


class MatrimonyProfile(Base):
    __tablename__ = "matrimony_profiles"
    __table_args__ = (
        Index("ix_matrimony_listing", "is_approved", "is_completed", "is_hidden"),
        Index("ix_matrimony_owner_paid", "owner_id", "is_paid"),
        Index("ix_matrimony_due_purge", "is_completed", "scheduled_deletion_at"),
    )

    id = Column(BigInteger, primary_key=True, index=True)
    owner_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Оплата: payment_required фиксируется при создании по статусу членства владельца
    payment_required = Column(Boolean, default=True, nullable=False)
    is_paid = Column(Boolean, default=False, nullable=False)
    payment_amount = Column(Integer, nullable=True)
    payment_order_id = Column(String(64), nullable=True)
    payment_id = Column(String(64), nullable=True)
    payment_signature = Column(String(128), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    is_approved = Column(Boolean, default=False, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)

    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_deletion_at = Column(DateTime(timezone=True), nullable=True)

    # Личные данные
    full_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    age = Column(Integer, nullable=False, index=True)
    gender = Column(String(10), nullable=False, index=True)
    height = Column(String(20), nullable=False)
    weight = Column(String(20), nullable=True)
    marital_status = Column(String(20), nullable=False, index=True)

    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False)
    current_address = Column(Text, nullable=False)
    city = Column(String(64), nullable=False)
    state = Column(String(64), nullable=False)

    father_name = Column(String(100), nullable=True)
    mother_name = Column(String(100), nullable=True)
    siblings = Column(Text, nullable=True)
    family_details = Column(Text, nullable=True)

    education = Column(String(255), nullable=False)
    occupation = Column(String(255), nullable=False)
    employer_name = Column(String(255), nullable=True)
    annual_income = Column(String(64), nullable=True)

    partner_preferences = Column(Text, nullable=True)
    hobbies = Column(Text, nullable=True)
    about_me = Column(Text, nullable=True)

    # [{"media_id": ..., "url": ..., "is_profile_photo": bool}, ...] в порядке показа
    photos = Column(JSON, nullable=False, default=list)

    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def lifecycle_state(self) -> ProfileState:
        if self.is_completed:
            return ProfileState.COMPLETED
        if not self.is_approved:
            return ProfileState.AWAITING_PAYMENT
        if self.is_hidden:
            return ProfileState.HIDDEN
        return ProfileState.APPROVED

    @property
    def is_discoverable(self) -> bool:
        return is_discoverable(self.is_approved, self.is_completed, self.is_hidden)

    @property
    def media_ids(self) -> list[str]:
        return [photo["media_id"] for photo in (self.photos or []) if photo.get("media_id")]

    def __repr__(self):
        return f"<MatrimonyProfile id={self.id} owner={self.owner_id} state={self.lifecycle_state.value}>"
