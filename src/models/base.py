"""
Database base models and utilities.

This module provides the base SQLAlchemy model class and common column
helpers used throughout the models package.
"""

from enum import Enum
from typing import Type

from sqlalchemy import Enum as SAEnum

# Re-export Base from core.database for backward compatibility
from core.database import Base  # type: ignore[reportUnusedImport]


def enum_column(enum_cls: Type[Enum], name: str) -> SAEnum:
    """
    Column type storing an Enum by its value in a plain VARCHAR.

    Values (not member names) are persisted so the stored strings match the
    canonical API values ("confirmed", "to_be_paid", ...).
    """
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
