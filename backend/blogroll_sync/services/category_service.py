"""Link category namespace: lookups used when validating the default category."""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blogroll_sync.models import LinkCategory, LINK_CATEGORY
from blogroll_sync.schemas.category import CategoryRef
from blogroll_sync.utils.security import sanitize_log_message

logger = logging.getLogger(__name__)


class CategorySnapshot:
    """In-memory copy of one namespace, usable as the sanitizer's category lookup.

    The sanitizer is synchronous, so routes take a snapshot before calling it.
    """

    def __init__(self, refs: Iterable[CategoryRef], namespace: str = LINK_CATEGORY):
        self.namespace = namespace
        self._by_id = {ref.id: ref for ref in refs}

    def exists(self, identifier: int, namespace: str = LINK_CATEGORY) -> Optional[CategoryRef]:
        if namespace != self.namespace:
            return None
        return self._by_id.get(identifier)


class CategoryService:
    """Read and create link categories."""

    @staticmethod
    async def exists(
        db: AsyncSession, identifier: int, namespace: str = LINK_CATEGORY
    ) -> Optional[CategoryRef]:
        """Return the category with this identifier, or None."""
        result = await db.execute(
            select(LinkCategory).where(
                LinkCategory.id == identifier,
                LinkCategory.taxonomy == namespace,
            )
        )
        category = result.scalar_one_or_none()
        if category is None:
            return None
        return CategoryRef.model_validate(category)

    @staticmethod
    async def list_all(db: AsyncSession, namespace: str = LINK_CATEGORY) -> list[CategoryRef]:
        """All categories in a namespace, ordered by name."""
        result = await db.execute(
            select(LinkCategory)
            .where(LinkCategory.taxonomy == namespace)
            .order_by(LinkCategory.name, LinkCategory.id)
        )
        return [CategoryRef.model_validate(c) for c in result.scalars().all()]

    @staticmethod
    async def create(db: AsyncSession, name: str, namespace: str = LINK_CATEGORY) -> CategoryRef:
        """Create a category, or return the existing one with the same name."""
        result = await db.execute(
            select(LinkCategory).where(
                LinkCategory.taxonomy == namespace,
                LinkCategory.name == name,
            )
        )
        category = result.scalar_one_or_none()
        if category is None:
            category = LinkCategory(name=name, taxonomy=namespace)
            db.add(category)
            await db.commit()
            await db.refresh(category)
            logger.info(f"Created {namespace} '{sanitize_log_message(name)}' (id={category.id})")
        return CategoryRef.model_validate(category)

    @classmethod
    async def snapshot(cls, db: AsyncSession, namespace: str = LINK_CATEGORY) -> CategorySnapshot:
        """Load a whole namespace for synchronous lookups."""
        return CategorySnapshot(await cls.list_all(db, namespace), namespace)
