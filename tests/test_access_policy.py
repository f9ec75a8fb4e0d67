import pytest

from conftest import InMemoryProfileStore, profile_fields, run
from models.user import User
from services.access_policy import can_browse_listing, viewer_can_browse


@pytest.mark.parametrize(
    "is_member,has_paid,expected",
    [
        (False, False, False),
        (True, False, True),
        (False, True, True),
        (True, True, True),
    ],
)
def test_can_browse_listing_truth_table(is_member, has_paid, expected):
    assert can_browse_listing(is_member, has_paid) is expected


def test_member_browses_without_profile():
    store = InMemoryProfileStore()
    viewer = User(id=1, is_member=True)
    assert run(viewer_can_browse(store, viewer)) is True


def test_non_member_needs_paid_profile(lifecycle, store):
    viewer = User(id=1001, is_member=False)
    assert run(viewer_can_browse(store, viewer)) is False

    profile = run(lifecycle.create(viewer.id, False, profile_fields()))
    assert run(viewer_can_browse(store, viewer)) is False

    # одобрение админом без оплаты доступа не даёт
    run(lifecycle.approve(profile.id))
    assert run(viewer_can_browse(store, viewer)) is False

    profile.is_paid = True
    assert run(viewer_can_browse(store, viewer)) is True


def test_rejected_profile_grants_nothing(lifecycle, store):
    viewer = User(id=1001, is_member=False)
    profile = run(lifecycle.create(viewer.id, False, profile_fields()))
    run(lifecycle.reject(profile.id))

    assert run(viewer_can_browse(store, viewer)) is False
