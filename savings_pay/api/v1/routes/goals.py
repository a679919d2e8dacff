# savings_pay/api/v1/routes/goals.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from savings_pay.schemas.goal import GoalCreate, GoalRead, GoalUpdate, DepositCreate, DepositRead
from savings_pay.crud.goal import (
    get_goals,
    get_goal_by_id,
    create_goal,
    update_goal,
    delete_goal,
    get_deposits_for_goal,
    create_deposit,
)
from savings_pay.core.database import get_async_session
from savings_pay.core.exceptions import GoalNotFound, ValidationError
from savings_pay.models.goal import DepositMode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metas", tags=["metas"])

async def _get_goal_or_404(goal_id: int, db: AsyncSession):
    goal = await get_goal_by_id(goal_id, db)
    if not goal:
        raise GoalNotFound(goal_id)
    return goal

@router.get("", response_model=List[GoalRead])
async def read_goals(
    usuario_id: Optional[int] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """Goals ordered by target date, latest first."""
    return await get_goals(usuario_id, db)

@router.post("", response_model=GoalRead, status_code=status.HTTP_201_CREATED)
async def create_goal_endpoint(
    goal_in: GoalCreate,
    db: AsyncSession = Depends(get_async_session),
):
    goal = await create_goal(goal_in, db)
    logger.info(f"Created goal {goal.id} for user {goal.usuario_id}")
    return goal

@router.put("/{goal_id}", response_model=GoalRead)
async def update_goal_endpoint(
    goal_id: int,
    goal_in: GoalUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    goal = await _get_goal_or_404(goal_id, db)
    changes = goal_in.model_dump(exclude_unset=True)
    mode = changes.get("tipo_deposito", goal.tipo_deposito)
    automatic_amount = changes.get("monto_automatico", goal.monto_automatico)
    if mode == DepositMode.automatico and not automatic_amount:
        raise ValidationError("monto_automatico es obligatorio para metas automáticas")
    return await update_goal(goal, goal_in, db)

@router.delete("/{goal_id}")
async def delete_goal_endpoint(
    goal_id: int,
    db: AsyncSession = Depends(get_async_session),
):
    goal = await _get_goal_or_404(goal_id, db)
    await delete_goal(goal, db)
    logger.info(f"Deleted goal {goal_id} and its deposits")
    return {"message": "Meta eliminada correctamente"}

@router.get("/{goal_id}/depositos", response_model=List[DepositRead])
async def read_goal_deposits(
    goal_id: int,
    db: AsyncSession = Depends(get_async_session),
):
    await _get_goal_or_404(goal_id, db)
    return await get_deposits_for_goal(goal_id, db)

@router.post("/{goal_id}/depositos", response_model=DepositRead, status_code=status.HTTP_201_CREATED)
async def create_goal_deposit(
    goal_id: int,
    deposit_in: DepositCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """Record a manual deposit and add it to the goal's saved amount."""
    goal = await _get_goal_or_404(goal_id, db)
    return await create_deposit(goal, deposit_in, db)
