from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func

from .database import Base


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class StateEntry(Base, TimestampMixin):
    """One key of the AuraFit key-value state: (namespace, owner, qualifier) -> JSON."""

    __tablename__ = "state_entries"

    namespace = Column(String, primary_key=True)
    owner = Column(String, primary_key=True, index=True)
    qualifier = Column(String, primary_key=True, default="")
    data_json = Column(Text, nullable=False)
