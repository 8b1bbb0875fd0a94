from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


LIKE_ESCAPE = "\\"


def contains_pattern(value: str) -> str:
    """Substring pattern for ILIKE in which user-typed % and _ match literally."""
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
