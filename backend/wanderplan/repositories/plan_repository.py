from __future__ import annotations

from wanderplan.models.orm import GenerationError, GenerationStatus, Plan, PlanActivity
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .base import BaseRepository

SORT_COLUMNS = {
    "created_at": Plan.created_at,
    "name": Plan.name,
    "destination": Plan.destination,
}


class PlanRepository(BaseRepository):
    """Plan level data operations; every read is scoped to an owner."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def add(self, plan: Plan) -> Plan:
        self.session.add(plan)
        self.session.flush()
        return plan

    def get(self, plan_id: str) -> Plan | None:
        return self.session.get(Plan, plan_id)

    def get_owned(self, plan_id: str, user_id: str) -> Plan | None:
        return (
            self.session.query(Plan)
            .filter(Plan.id == plan_id, Plan.user_id == user_id)
            .one_or_none()
        )

    def get_owned_with_activities(self, plan_id: str, user_id: str) -> Plan | None:
        return (
            self.session.query(Plan)
            .options(selectinload(Plan.activities).selectinload(PlanActivity.attraction))
            .filter(Plan.id == plan_id, Plan.user_id == user_id)
            .one_or_none()
        )

    def get_by_job_id(self, job_id: str, user_id: str) -> Plan | None:
        return (
            self.session.query(Plan)
            .filter(Plan.job_id == job_id, Plan.user_id == user_id)
            .one_or_none()
        )

    def list_for_user(
        self,
        *,
        user_id: str,
        sort: str,
        descending: bool,
        limit: int,
        offset: int,
    ) -> list[Plan]:
        column = SORT_COLUMNS[sort]
        ordering = column.desc() if descending else column.asc()
        return (
            self.session.query(Plan)
            .filter(Plan.user_id == user_id)
            .order_by(ordering, Plan.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_for_user(self, user_id: str) -> int:
        return (
            self.session.query(func.count(Plan.id))
            .filter(Plan.user_id == user_id)
            .scalar()
            or 0
        )

    def list_processing_ids(self) -> list[str]:
        rows = (
            self.session.query(Plan.id)
            .filter(Plan.status == GenerationStatus.PROCESSING)
            .order_by(Plan.created_at.asc())
            .all()
        )
        return [row[0] for row in rows]

    def latest_error(self, plan_id: str) -> GenerationError | None:
        return (
            self.session.query(GenerationError)
            .filter(GenerationError.plan_id == plan_id)
            .order_by(GenerationError.created_at.desc(), GenerationError.id.desc())
            .first()
        )

    def add_error(
        self,
        plan_id: str,
        *,
        message: str,
        details: dict | None = None,
    ) -> GenerationError:
        row = GenerationError(
            plan_id=plan_id,
            error_message=message,
            error_details=details,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def delete(self, plan: Plan) -> None:
        self.session.delete(plan)
        self.session.flush()
