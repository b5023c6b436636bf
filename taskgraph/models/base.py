"""Declarative base and the column mixins shared by the taskgraph tables."""
from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    # Epoch milliseconds, set by the store
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class TimestampWithCompletedMixin(TimestampMixin):
    # Set when the task enters done, cleared when it reopens
    completed_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)


class PrefixedIdMixin:
    """String primary keys such as ``task_3f9c0a1b2d4e``; set ``_id_prefix``."""

    _id_prefix: str = ""

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    @classmethod
    def generate_id(cls) -> str:
        return f"{cls._id_prefix}{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
