"""Repository for User database operations."""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from fivlo.models.user import User
from fivlo.database.models import UserDB

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations.

    The coin balance is not writable here; see `LedgerRepository`.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return user_db.to_pydantic() if user_db else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        user_db = self.db.query(UserDB).filter(UserDB.email == email).first()
        return user_db.to_pydantic() if user_db else None

    def exists(self, user_id: str) -> bool:
        return self.db.query(UserDB.id).filter(UserDB.id == user_id).first() is not None

    def create(self, user: User) -> User:
        """Create a new user with an empty wallet."""
        try:
            user_db = UserDB.from_pydantic(user)
            self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Created user {user.id}: {user.email}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user {user.id}: {type(e).__name__}: {str(e)}")
            raise

    def update_profile(
        self,
        user_id: str,
        *,
        name: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> Optional[User]:
        """Update profile fields (never the coin balance or plan)."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        if not user_db:
            return None
        if name is not None:
            user_db.name = name
        if timezone is not None:
            user_db.timezone = timezone
        user_db.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Updated user {user_id}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update user {user_id}: {type(e).__name__}: {str(e)}")
            raise
