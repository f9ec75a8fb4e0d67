from models.user import User


def can_browse_listing(viewer_is_member: bool, viewer_has_paid_profile: bool) -> bool:
    """
    Смотреть чужие анкеты могут члены сообщества (бесплатно) и те,
    кто оплатил хотя бы одну собственную анкету. Отклонённая или
    ещё не созданная анкета доступа не даёт.
    """
    return bool(viewer_is_member) or bool(viewer_has_paid_profile)


async def viewer_can_browse(store, viewer: User) -> bool:
    # членам не нужен лишний запрос в базу
    if viewer.is_member:
        return can_browse_listing(True, False)
    has_paid = await store.owner_has_paid_profile(viewer.id)
    return can_browse_listing(False, has_paid)
