from __future__ import annotations

from wanderplan.models.orm import Attraction, PlanActivity
from sqlalchemy.orm import Session, joinedload

from .base import BaseRepository


class ActivityRepository(BaseRepository):
    """Activities of a plan and the attractions they reference."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_in_plan(self, activity_id: str, plan_id: str) -> PlanActivity | None:
        return (
            self.session.query(PlanActivity)
            .options(joinedload(PlanActivity.attraction))
            .filter(PlanActivity.id == activity_id, PlanActivity.plan_id == plan_id)
            .one_or_none()
        )

    def upsert_attraction(
        self,
        *,
        name: str,
        address: str,
        description: str,
    ) -> Attraction:
        """Return the attraction keyed by (name, address), creating it if needed."""

        attraction = (
            self.session.query(Attraction)
            .filter(Attraction.name == name, Attraction.address == address)
            .one_or_none()
        )
        if attraction is None:
            attraction = Attraction(name=name, address=address, description=description)
            self.session.add(attraction)
            self.session.flush()
        elif description and attraction.description != description:
            attraction.description = description
        return attraction

    def add_many(self, activities: list[PlanActivity]) -> list[PlanActivity]:
        self.session.add_all(activities)
        self.session.flush()
        return activities
