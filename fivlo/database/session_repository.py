"""Repository for pomodoro session database operations."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from fivlo.database.models import PomodoroSessionDB, enum_to_value
from fivlo.models.session import SessionRecord, SessionStatus

logger = logging.getLogger(__name__)


class SessionRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, session: SessionRecord) -> SessionRecord:
        try:
            row = PomodoroSessionDB.from_pydantic(session)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Started session {session.id} for user {session.user_id}: {session.goal[:50]}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create session for user {session.user_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, session_id: str) -> Optional[SessionRecord]:
        row = (
            self.db.query(PomodoroSessionDB)
            .filter(PomodoroSessionDB.user_id == user_id, PomodoroSessionDB.id == session_id)
            .first()
        )
        return row.to_pydantic() if row else None

    def get_active(self, user_id: str) -> Optional[SessionRecord]:
        """Most recently started active session, if any."""
        row = (
            self.db.query(PomodoroSessionDB)
            .filter(
                PomodoroSessionDB.user_id == user_id,
                PomodoroSessionDB.status == SessionStatus.ACTIVE.value,
            )
            .order_by(PomodoroSessionDB.started_at.desc())
            .first()
        )
        return row.to_pydantic() if row else None

    def finalize(self, user_id: str, session_id: str, status: SessionStatus, ended_at: datetime) -> bool:
        """Move an active session to completed/abandoned.

        Returns False when the session is missing or already finalized; finalized
        sessions are never modified.
        """
        try:
            updated = (
                self.db.query(PomodoroSessionDB)
                .filter(
                    PomodoroSessionDB.user_id == user_id,
                    PomodoroSessionDB.id == session_id,
                    PomodoroSessionDB.status == SessionStatus.ACTIVE.value,
                )
                .update(
                    {PomodoroSessionDB.status: enum_to_value(status), PomodoroSessionDB.ended_at: ended_at},
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to finalize session {session_id}: {type(e).__name__}: {str(e)}")
            raise
        if updated:
            logger.debug(f"Session {session_id} -> {enum_to_value(status)}")
        return bool(updated)

    def list_between(self, user_id: str, start: datetime, end: datetime) -> List[SessionRecord]:
        """Sessions started in [start, end) (naive UTC bounds), oldest first."""
        rows = (
            self.db.query(PomodoroSessionDB)
            .filter(
                PomodoroSessionDB.user_id == user_id,
                PomodoroSessionDB.started_at >= start,
                PomodoroSessionDB.started_at < end,
            )
            .order_by(PomodoroSessionDB.started_at.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_by_goal(self, user_id: str, goal: str) -> List[SessionRecord]:
        """Sessions whose goal label contains `goal` (case-insensitive), oldest first."""
        rows = (
            self.db.query(PomodoroSessionDB)
            .filter(
                PomodoroSessionDB.user_id == user_id,
                PomodoroSessionDB.goal.ilike(f"%{goal}%"),
            )
            .order_by(PomodoroSessionDB.started_at.asc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def count_for_user(self, user_id: str) -> int:
        return self.db.query(PomodoroSessionDB).filter(PomodoroSessionDB.user_id == user_id).count()
