# src/threadvote/models/user.py
"""SQLAlchemy model for user records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from threadvote.db.session import Base
from threadvote.db.time import utcnow


class User(Base):
    """A registered participant.

    Credentials live with the identity provider; this table only holds what
    the discussion engine needs: a handle, the admin flag and derived karma.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Derived from authored scores; written only by the karma aggregator.
    karma: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
