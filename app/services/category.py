import logging
from typing import Optional

from app.core.enums import OTHER_CATEGORY_NAME
from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.models.category import Category
from app.repositories.interfaces import CategoryRepository
from app.schemas.category import CategoryResponse

logger = logging.getLogger(__name__)

DEFAULT_ICON = "📁"
DEFAULT_COLOR = "#6b7280"


class CategoryService:
    def __init__(self, categories: CategoryRepository):
        self.categories = categories

    async def _owned(self, user_id: str, category_id: str) -> Category:
        category = await self.categories.get(category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    async def list_categories(self, user_id: str) -> list[CategoryResponse]:
        return [CategoryResponse.model_validate(c) for c in await self.categories.list_for_user(user_id)]

    async def create_category(
        self,
        user_id: str,
        name: str,
        description: str,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> CategoryResponse:
        name = name.strip()
        if await self.categories.find_by_name(user_id, name):
            raise ConflictError(f'Category "{name}" already exists')

        existing = await self.categories.list_for_user(user_id)
        category = await self.categories.create(
            user_id=user_id,
            name=name,
            description=description.strip(),
            icon=icon or DEFAULT_ICON,
            color=color or DEFAULT_COLOR,
            is_default=False,
            sort_order=max((c.sort_order for c in existing), default=0) + 1,
        )
        return CategoryResponse.model_validate(category)

    async def update_category(self, user_id: str, category_id: str, **fields) -> CategoryResponse:
        category = await self._owned(user_id, category_id)

        if "name" in fields and fields["name"] is not None:
            fields["name"] = fields["name"].strip()
            if category.name == OTHER_CATEGORY_NAME and fields["name"] != OTHER_CATEGORY_NAME:
                raise ForbiddenError(f'The "{OTHER_CATEGORY_NAME}" category cannot be renamed')
            clash = await self.categories.find_by_name(user_id, fields["name"])
            if clash and clash.id != category.id:
                raise ConflictError(f'Category "{fields["name"]}" already exists')

        changes = {k: v for k, v in fields.items() if v is not None}
        return CategoryResponse.model_validate(await self.categories.update(category, **changes))

    async def delete_category(self, user_id: str, category_id: str) -> int:
        """
        Delete a category. Its transactions move to "Other"; vendor cache
        entries and budgets pointing at it are removed.

        Returns the number of reassigned transactions.
        """
        category = await self._owned(user_id, category_id)
        if category.name == OTHER_CATEGORY_NAME:
            raise ForbiddenError(f'The "{OTHER_CATEGORY_NAME}" category cannot be deleted')

        other = await self.categories.find_by_name(user_id, OTHER_CATEGORY_NAME)
        if other is None:
            other = await self.categories.create(
                user_id=user_id,
                name=OTHER_CATEGORY_NAME,
                description="Anything that does not fit another category",
                icon="📦",
                color=DEFAULT_COLOR,
                is_default=True,
                sort_order=99,
            )

        name = category.name
        moved = await self.categories.delete_reassigning(category, other.id)
        logger.info("Deleted category %s; %d transaction(s) moved to %s", name, moved, OTHER_CATEGORY_NAME)
        return moved
