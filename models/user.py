# models/user.py
from sqlalchemy import Column, BigInteger, DateTime, Boolean, String, Text
from sqlalchemy.sql import func

from .base import Base


class User(Base):
    """
    Участник сообщества. Регистрация, оплата членства и модерация аккаунтов
    живут вне модуля анкет: здесь флаги только читаются.
    """
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)

    is_approved = Column(Boolean, default=False, nullable=False)
    is_member = Column(Boolean, default=False, nullable=False)   # пожизненное платное членство
    is_admin = Column(Boolean, default=False, nullable=False)
    is_suspended = Column(Boolean, default=False, nullable=False)
    suspension_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User id={self.id} email={self.email} member={self.is_member}>"
