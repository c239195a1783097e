"""
Category Service

Ownership-scoped CRUD for categories.

CRITICAL: A category that is still referenced by a transaction is
never deleted. The delete is refused up front, and the RESTRICT
foreign key refuses it again if a transaction sneaks in between.
"""

from typing import Callable
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.finance import (
    Category,
    CategoryCreateRequest,
    CategoryDeleteResult,
    CategoryDto,
    CategoryUpdateRequest,
)
from finance_tracker.services.storage import InUseError, UnitOfWork


logger = structlog.get_logger(__name__)


class CategoryService:
    """Create, rename, list and delete the categories of one user."""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self._uow_factory = uow_factory

    async def create_category(
        self,
        request: CategoryCreateRequest,
        user_id: UUID,
    ) -> UUID:
        category = Category(id=uuid4(), user_id=user_id, name=request.name)
        async with self._uow_factory() as uow:
            await uow.categories.add(category)

        logger.info("category_created", category_id=str(category.id), user_id=str(user_id))
        return category.id

    async def update_category(
        self,
        request: CategoryUpdateRequest,
        user_id: UUID,
    ) -> bool:
        """Rename an owned category. False if it is missing or not the user's."""
        async with self._uow_factory() as uow:
            updated = await uow.categories.update(
                Category(id=request.id, user_id=user_id, name=request.name)
            )

        if not updated:
            logger.warning(
                "category_update_rejected",
                category_id=str(request.id),
                user_id=str(user_id),
            )
        return updated

    async def get_all_categories(self, user_id: UUID) -> list[CategoryDto]:
        async with self._uow_factory() as uow:
            categories = await uow.categories.list_for_user(user_id)
        return [CategoryDto.from_category(c) for c in categories]

    async def delete_category(
        self,
        category_id: UUID,
        user_id: UUID,
    ) -> CategoryDeleteResult:
        """
        Delete an owned, unused category.

        Returns:
            DELETED, NOT_FOUND (missing or not the user's) or
            IN_USE (transactions still reference it; nothing changes)
        """
        try:
            async with self._uow_factory() as uow:
                if not await uow.categories.exists_for_user(category_id, user_id):
                    result = CategoryDeleteResult.NOT_FOUND
                elif await uow.transactions.exists_for_category(category_id):
                    result = CategoryDeleteResult.IN_USE
                else:
                    await uow.categories.delete(category_id)
                    result = CategoryDeleteResult.DELETED
        except InUseError:
            result = CategoryDeleteResult.IN_USE

        logger.info(
            "category_delete",
            category_id=str(category_id),
            user_id=str(user_id),
            result=result.value,
        )
        return result
