# src/plans/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from plans.services import PlanService
from plans.schemas import PlanCreate, PlanUpdate, PlanResponse
from auth.routes import get_current_user
from auth.models import User
from database import get_db

router = APIRouter(prefix="/plans", tags=["plans"])

@router.get("/", response_model=List[PlanResponse])
def get_plans(
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the organization's plans."""
    return PlanService.get_plans(current_user.organization_id, db, active_only=active_only)

@router.post("/", response_model=PlanResponse, status_code=201)
def create_plan(
    plan_data: PlanCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a plan."""
    return PlanService.create_plan(current_user.organization_id, plan_data, db, user_id=current_user.id)

@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Retrieve a plan."""
    return PlanService.get_plan(current_user.organization_id, plan_id, db)

@router.put("/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: int,
    plan_data: PlanUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a plan."""
    return PlanService.update_plan(current_user.organization_id, plan_id, plan_data, db, user_id=current_user.id)

@router.delete("/{plan_id}")
def delete_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    PlanService.delete_plan(current_user.organization_id, plan_id, db, user_id=current_user.id)
    return {"message": "Plan deleted"}
