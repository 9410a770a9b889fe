"""Link category model (the taxonomy a default category is picked from)."""

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from blogroll_sync.db import Base
from blogroll_sync.schemas.category import LINK_CATEGORY


class LinkCategory(Base):
    """A named, identifier-keyed group within a taxonomy namespace."""

    __tablename__ = "link_categories"
    __table_args__ = (UniqueConstraint("taxonomy", "name", name="uq_link_categories_taxonomy_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    taxonomy = Column(String(32), nullable=False, default=LINK_CATEGORY, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<LinkCategory(id={self.id}, name={self.name}, taxonomy={self.taxonomy})>"
