# byod_asset_manager/models/types.py
from enum import Enum

from byod_asset_manager import db


def enum_column(enum_cls, **kwargs):
    """Column storing an Enum by its value (e.g. 'Ready to Use')."""
    return db.Column(
        db.Enum(enum_cls, native_enum=False, length=64, validate_strings=True,
                values_callable=lambda members: [m.value for m in members]),
        **kwargs
    )


def coerce_enum(enum_cls, value, field=None):
    """Match an enum member, its name or its value (case-insensitive)."""
    from byod_asset_manager.errors import ValidationError

    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        needle = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == needle or member.name.lower() == needle:
                return member
    raise ValidationError(f"Invalid {field or enum_cls.__name__}: {value}")


class StrEnum(str, Enum):
    def __str__(self):
        return self.value
