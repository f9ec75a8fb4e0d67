import secrets

# Двухзначные коды сущностей, по ним видно, чей это id
TYPE_POSTFIX = {
    "users": 1,
    "matrimony_profiles": 2,
}

_RANDOM_PART = 10 ** 8


def generate_random_id(entity: str) -> int:
    """Возвращает id вида <8 случайных цифр><2-значный постфикс сущности>."""
    try:
        postfix = TYPE_POSTFIX[entity]
    except KeyError:
        raise ValueError(f"Unknown entity for ID generation: {entity}") from None
    return secrets.randbelow(_RANDOM_PART) * 100 + postfix