"""Option storage model: one row per named option, value kept as text."""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from blogroll_sync.db import Base


class Setting(Base):
    """A named option. The settings record lives in a single row as JSON."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Setting(key={self.key})>"
