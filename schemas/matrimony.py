# schemas/matrimony.py
from typing import Optional, List, Literal
from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field

from models.matrimony_profile import ProfileState

Gender = Literal["male", "female", "other"]
MaritalStatus = Literal["never_married", "divorced", "widowed"]


class PhotoItem(BaseModel):
    media_id: str = Field(..., min_length=1, description="ID объекта в хранилище медиа")
    url: str = Field(..., min_length=1, description="Публичный URL изображения")
    is_profile_photo: bool = Field(False, description="Главная фотография анкеты")

    class Config:
        extra = "forbid"


class MatrimonyProfileCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date = Field(..., description="Дата рождения (YYYY-MM-DD), не младше 18 лет")
    gender: Gender
    height: str = Field(..., min_length=1, max_length=20)
    weight: Optional[str] = Field(None, max_length=20)
    marital_status: MaritalStatus

    phone: str = Field(..., pattern=r"^[0-9]{10}$", description="10 цифр")
    email: EmailStr
    current_address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1, max_length=64)
    state: str = Field(..., min_length=1, max_length=64)

    father_name: Optional[str] = Field(None, max_length=100)
    mother_name: Optional[str] = Field(None, max_length=100)
    siblings: Optional[str] = None
    family_details: Optional[str] = None

    education: str = Field(..., min_length=1, max_length=255)
    occupation: str = Field(..., min_length=1, max_length=255)
    employer_name: Optional[str] = Field(None, max_length=255)
    annual_income: Optional[str] = Field(None, max_length=64)

    partner_preferences: Optional[str] = None
    hobbies: Optional[str] = None
    about_me: Optional[str] = None

    photos: List[PhotoItem] = Field(default_factory=list)

    class Config:
        # владелец, оплата, одобрение и завершение не задаются клиентом
        extra = "forbid"


class MatrimonyProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    height: Optional[str] = Field(None, min_length=1, max_length=20)
    weight: Optional[str] = Field(None, max_length=20)
    marital_status: Optional[MaritalStatus] = None

    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    email: Optional[EmailStr] = None
    current_address: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1, max_length=64)
    state: Optional[str] = Field(None, min_length=1, max_length=64)

    father_name: Optional[str] = Field(None, max_length=100)
    mother_name: Optional[str] = Field(None, max_length=100)
    siblings: Optional[str] = None
    family_details: Optional[str] = None

    education: Optional[str] = Field(None, min_length=1, max_length=255)
    occupation: Optional[str] = Field(None, min_length=1, max_length=255)
    employer_name: Optional[str] = Field(None, max_length=255)
    annual_income: Optional[str] = Field(None, max_length=64)

    partner_preferences: Optional[str] = None
    hobbies: Optional[str] = None
    about_me: Optional[str] = None

    photos: Optional[List[PhotoItem]] = None

    class Config:
        extra = "forbid"


class MatrimonyProfileRead(BaseModel):
    id: int
    owner_id: int
    lifecycle_state: ProfileState
    payment_required: bool
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_approved: bool
    is_hidden: bool
    is_completed: bool
    completed_at: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None

    full_name: str
    date_of_birth: date
    age: int
    gender: str
    height: str
    weight: Optional[str] = None
    marital_status: str
    phone: str
    email: str
    current_address: str
    city: str
    state: str
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    siblings: Optional[str] = None
    family_details: Optional[str] = None
    education: str
    occupation: str
    employer_name: Optional[str] = None
    annual_income: Optional[str] = None
    partner_preferences: Optional[str] = None
    hobbies: Optional[str] = None
    about_me: Optional[str] = None
    photos: List[PhotoItem] = Field(default_factory=list)

    view_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BrowseFilters(BaseModel):
    gender: Optional[Gender] = None
    min_age: Optional[int] = Field(None, ge=18)
    max_age: Optional[int] = Field(None, ge=18)
    marital_status: Optional[MaritalStatus] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class Pagination(BaseModel):
    total: int
    page: int
    pages: int


class MatrimonyListResponse(BaseModel):
    profiles: List[MatrimonyProfileRead]
    pagination: Pagination


class PaymentVerifyRequest(BaseModel):
    profile_id: int
    order_id: str = Field(..., min_length=1, description="ID заказа платёжного шлюза")
    payment_id: str = Field(..., min_length=1, description="ID платежа платёжного шлюза")
    signature: str = Field(..., min_length=1, description="HMAC-подпись из колбэка")


class CompleteRequest(BaseModel):
    grace_period_days: Optional[int] = Field(None, ge=0, description="По умолчанию из настроек")


class SweepReportRead(BaseModel):
    purged: List[int]
    failed: List[int]
