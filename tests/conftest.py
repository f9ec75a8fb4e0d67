import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from core.clock import Clock
from core.errors import ExternalUnavailable
from core.id_generator import generate_random_id
from models.matrimony_profile import is_discoverable
from services.matrimony_lifecycle import ProfileLifecycle
from services.payment_verifier import PaymentVerifier, compute_payment_signature

SECRET = "test-gateway-secret"


class FrozenClock(Clock):
    def __init__(self, moment: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name)
        self.moment = moment

    def now(self) -> datetime:
        return self.moment.astimezone(self.tz)


class InMemoryProfileStore:
    """Хранилище анкет в памяти с тем же интерфейсом, что и SqlAlchemyProfileStore."""

    def __init__(self):
        self.profiles = {}
        self.failing = set()          # имена методов, которые бросают ExternalUnavailable
        self.undeletable = set()      # id анкет, удаление которых падает
        self._created = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _check(self, name):
        if name in self.failing:
            raise ExternalUnavailable(f"{name} failed")

    async def get(self, profile_id):
        self._check("get")
        return self.profiles.get(profile_id)

    async def find_for_owner(self, owner_id):
        return [p for p in self.profiles.values() if p.owner_id == owner_id]

    async def owner_has_paid_profile(self, owner_id):
        return any(p.owner_id == owner_id and p.is_paid for p in self.profiles.values())

    async def find_discoverable(self, filters):
        items = [
            p for p in self.profiles.values()
            if is_discoverable(p.is_approved, p.is_completed, p.is_hidden)
            and (filters.gender is None or p.gender == filters.gender)
            and (filters.min_age is None or p.age >= filters.min_age)
            and (filters.max_age is None or p.age <= filters.max_age)
            and (filters.marital_status is None or p.marital_status == filters.marital_status)
        ]
        items.sort(key=lambda p: p.created_at, reverse=True)
        start = (filters.page - 1) * filters.limit
        return items[start:start + filters.limit], len(items)

    async def find_pending(self):
        return [p for p in self.profiles.values() if not p.is_approved]

    async def find_due_for_purge(self, now):
        return [
            p for p in self.profiles.values()
            if p.is_completed and p.scheduled_deletion_at is not None and p.scheduled_deletion_at <= now
        ]

    async def insert(self, profile):
        self._check("insert")
        profile.id = generate_random_id("matrimony_profiles")
        self._created += timedelta(minutes=1)
        profile.created_at = profile.updated_at = self._created
        self.profiles[profile.id] = profile
        return profile

    async def save(self, profile):
        self._check("save")
        self.profiles[profile.id] = profile
        return profile

    async def mark_paid(self, profile_id, payment):
        profile = self.profiles.get(profile_id)
        if profile is None or profile.is_paid:
            return False
        profile.is_paid = True
        profile.is_approved = True
        profile.payment_amount = payment.amount
        profile.payment_order_id = payment.order_id
        profile.payment_id = payment.payment_id
        profile.payment_signature = payment.signature
        profile.paid_at = payment.paid_at
        return True

    async def increment_view_count(self, profile_id):
        self._check("increment_view_count")
        self.profiles[profile_id].view_count += 1

    async def delete(self, profile_id):
        if profile_id in self.undeletable:
            raise ExternalUnavailable(f"cannot delete {profile_id}")
        self.profiles.pop(profile_id, None)


class FakeMediaHost:
    def __init__(self):
        self.batch_calls = []
        self.single_calls = []
        self.broken_ids = set()   # delete_batch с этими id бросает исключение

    async def delete(self, media_id):
        self.single_calls.append(media_id)
        if media_id in self.broken_ids:
            raise ExternalUnavailable("media host down")

    async def delete_batch(self, media_ids):
        media_ids = list(media_ids)
        self.batch_calls.append(media_ids)
        if self.broken_ids.intersection(media_ids):
            raise ExternalUnavailable("media host down")
        return {media_id: True for media_id in media_ids}


class FakeNotifier:
    def __init__(self):
        self.approved = []
        self.broken = False

    
    def configured(self):
        return True

    async def profile_approved(self, email, name, profile_id):
        if self.broken:
            raise ExternalUnavailable("mail server down")
        self.approved.append((email, name, profile_id))


def profile_fields(**overrides):
    fields = {
        "full_name": "Asha Patil",
        "date_of_birth": date(1995, 6, 15),
        "gender": "female",
        "height": "5'4\"",
        "marital_status": "never_married",
        "phone": "9876543210",
        "email": "asha@example.com",
        "current_address": "12 MG Road",
        "city": "Pune",
        "state": "Maharashtra",
        "education": "B.E.",
        "occupation": "Engineer",
        "photos": [
            {"media_id": "matrimony/asha_1", "url": "https://cdn.example.com/asha_1.jpg", "is_profile_photo": True},
            {"media_id": "matrimony/asha_2", "url": "https://cdn.example.com/asha_2.jpg"},
        ],
    }
    fields.update(overrides)
    return fields


def sign(order_id: str, payment_id: str, secret: str = SECRET) -> str:
    return compute_payment_signature(order_id, payment_id, secret)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def now():
    return datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now):
    return FrozenClock(now)


@pytest.fixture
def store():
    return InMemoryProfileStore()


@pytest.fixture
def media_host():
    return FakeMediaHost()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def lifecycle(store, media_host, clock, notifier):
    return ProfileLifecycle(
        store=store,
        media_host=media_host,
        verifier=PaymentVerifier(SECRET),
        clock=clock,
        grace_period_days=14,
        matrimony_fee=40000,
        notifier=notifier,
    )
