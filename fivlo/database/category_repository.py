"""Repository for Category database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fivlo.database.models import CategoryDB
from fivlo.errors import DuplicateCategoryError
from fivlo.models.category import Category
from fivlo.models.constants import DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_NAME

logger = logging.getLogger(__name__)


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str, category_id: str) -> Optional[Category]:
        row = (
            self.db.query(CategoryDB)
            .filter(
                CategoryDB.user_id == user_id,
                CategoryDB.id == category_id,
                CategoryDB.is_active.is_(True),
            )
            .first()
        )
        return row.to_pydantic() if row else None

    def list_active(self, user_id: str) -> List[Category]:
        rows = (
            self.db.query(CategoryDB)
            .filter(CategoryDB.user_id == user_id, CategoryDB.is_active.is_(True))
            .order_by(CategoryDB.sort_order.asc(), CategoryDB.created_at.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def get_default(self, user_id: str) -> Optional[Category]:
        row = (
            self.db.query(CategoryDB)
            .filter(
                CategoryDB.user_id == user_id,
                CategoryDB.is_default.is_(True),
                CategoryDB.is_active.is_(True),
            )
            .first()
        )
        return row.to_pydantic() if row else None

    def create(
        self,
        user_id: str,
        *,
        name: str,
        color: str,
        icon: Optional[str] = None,
        is_default: bool = False,
    ) -> Category:
        name = name.strip()
        duplicate = (
            self.db.query(CategoryDB.id)
            .filter(
                CategoryDB.user_id == user_id,
                CategoryDB.name == name,
                CategoryDB.is_active.is_(True),
            )
            .first()
        )
        if duplicate:
            raise DuplicateCategoryError(f"Category '{name}' already exists")

        last_order = (
            self.db.query(func.max(CategoryDB.sort_order))
            .filter(CategoryDB.user_id == user_id)
            .scalar()
        )
        row = CategoryDB(
            user_id=user_id,
            name=name,
            color=color,
            icon=icon,
            sort_order=(last_order or 0) + 1,
            is_default=is_default,
            is_active=True,
            created_at=datetime.utcnow(),
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created category {row.id} for user {user_id}: {name}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create category for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def update(
        self,
        user_id: str,
        category_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Optional[Category]:
        """Rename or recolor an active category. Returns None if it does not exist."""
        row = (
            self.db.query(CategoryDB)
            .filter(
                CategoryDB.user_id == user_id,
                CategoryDB.id == category_id,
                CategoryDB.is_active.is_(True),
            )
            .first()
        )
        if row is None:
            return None

        if name is not None:
            name = name.strip()
            duplicate = (
                self.db.query(CategoryDB.id)
                .filter(
                    CategoryDB.user_id == user_id,
                    CategoryDB.name == name,
                    CategoryDB.is_active.is_(True),
                    CategoryDB.id != category_id,
                )
                .first()
            )
            if duplicate:
                raise DuplicateCategoryError(f"Category '{name}' already exists")
            row.name = name
        if color is not None:
            row.color = color
        if icon is not None:
            row.icon = icon
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated category {category_id} for user {user_id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update category {category_id}: {type(e).__name__}: {str(e)}")
            raise

    def ensure_default(self, user_id: str) -> Category:
        """Return the user's default category, creating it on first use."""
        existing = self.get_default(user_id)
        if existing:
            return existing
        return self.create(
            user_id,
            name=DEFAULT_CATEGORY_NAME,
            color=DEFAULT_CATEGORY_COLOR,
            is_default=True,
        )
