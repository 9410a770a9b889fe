"""Link category API endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogroll_sync.db import get_db
from blogroll_sync.schemas import CategoryCreate, CategoryRef
from blogroll_sync.services.category_service import CategoryService
from blogroll_sync.utils.error_handling import safe_error_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[CategoryRef])
async def list_categories(db: AsyncSession = Depends(get_db)) -> List[CategoryRef]:
    """List link categories, ordered by name."""
    return await CategoryService.list_all(db)


@router.post("", response_model=CategoryRef, status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryCreate, db: AsyncSession = Depends(get_db)) -> CategoryRef:
    """Create a link category (returns the existing one if the name is taken)."""
    try:
        return await CategoryService.create(db, body.name)
    except SQLAlchemyError as e:
        await db.rollback()
        safe_error_response(logger, e, "Failed to create category")
