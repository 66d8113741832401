"""Column mixins for the persistence models."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from sqlalchemy import Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from .types import UTCDateTime


class PKMixin:
    """Integer surrogate key ``id`` assigned by the database."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class TimestampMixin:
    """Database-maintained ``created_at``/``updated_at``, read back as aware UTC."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class ReprMixin:
    """``<ClassName id=... attr=...>`` built from ``__repr_attrs__``.

    Subclasses list the columns worth showing; secrets and digests must never
    be among them.
    """

    __repr_attrs__: ClassVar[tuple[str, ...]] = ("id",)

    def __repr__(self) -> str:
        fields = " ".join(f"{name}={getattr(self, name, None)!r}" for name in self.__repr_attrs__)
        return f"<{type(self).__name__} {fields}>"
