# src/plans/services.py
import logging

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional, List
from plans.models import Plan
from plans.schemas import PlanCreate, PlanUpdate, PlanResponse
from auth.services import log_activity, ActivityActions
from exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

# Columns that may not be cleared through an update.
REQUIRED_FIELDS = ("name", "price", "period_value", "period_unit", "is_active")

class PlanService:
    @staticmethod
    def create_plan(org_id: int, plan_data: PlanCreate, db: Session, user_id: Optional[int] = None) -> PlanResponse:
        plan = Plan(organization_id=org_id, **plan_data.model_dump())
        try:
            db.add(plan)
            db.commit()
            db.refresh(plan)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create plan in organization {org_id}: {str(e)}", exc_info=True)
            raise StorageError()

        log_activity(db, org_id, ActivityActions.PLAN_CREATED, "plan",
                     entity_id=plan.id, details={"name": plan.name, "price": str(plan.price)}, user_id=user_id)
        return PlanResponse.from_orm(plan)

    @staticmethod
    def _get_model(org_id: int, plan_id: int, db: Session) -> Plan:
        plan = db.query(Plan).filter(Plan.id == plan_id, Plan.organization_id == org_id).first()
        if not plan:
            raise NotFoundError("Plan", plan_id)
        return plan

    @staticmethod
    def get_plan(org_id: int, plan_id: int, db: Session) -> PlanResponse:
        return PlanResponse.from_orm(PlanService._get_model(org_id, plan_id, db))

    @staticmethod
    def get_plans(org_id: int, db: Session, active_only: bool = False) -> List[PlanResponse]:
        query = db.query(Plan).filter(Plan.organization_id == org_id)
        if active_only:
            query = query.filter(Plan.is_active == True)
        return [PlanResponse.from_orm(p) for p in query.order_by(Plan.name).all()]

    @staticmethod
    def update_plan(org_id: int, plan_id: int, plan_data: PlanUpdate, db: Session, user_id: Optional[int] = None) -> PlanResponse:
        """Update a plan. Existing subscriptions keep the price they were created with."""
        plan = PlanService._get_model(org_id, plan_id, db)
        changes = {
            key: value for key, value in plan_data.model_dump(exclude_unset=True).items()
            if value is not None or key not in REQUIRED_FIELDS
        }
        try:
            for key, value in changes.items():
                setattr(plan, key, value)
            db.commit()
            db.refresh(plan)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update plan {plan_id}: {str(e)}", exc_info=True)
            raise StorageError()

        log_activity(db, org_id, ActivityActions.PLAN_UPDATED, "plan",
                     entity_id=plan_id, details=jsonable_encoder(changes), user_id=user_id)
        return PlanResponse.from_orm(plan)

    @staticmethod
    def delete_plan(org_id: int, plan_id: int, db: Session, user_id: Optional[int] = None) -> None:
        """Delete a plan. Subscriptions created from it become custom subscriptions."""
        plan = PlanService._get_model(org_id, plan_id, db)
        name = plan.name
        try:
            db.delete(plan)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete plan {plan_id}: {str(e)}", exc_info=True)
            raise StorageError()

        log_activity(db, org_id, ActivityActions.PLAN_DELETED, "plan",
                     entity_id=plan_id, details={"name": name}, user_id=user_id)
