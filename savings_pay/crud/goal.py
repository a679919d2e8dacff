# savings_pay/crud/goal.py
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, desc
from savings_pay.models.goal import Goal, GoalDeposit, DepositMode
from typing import List, Optional
from savings_pay.schemas.goal import GoalCreate, GoalUpdate, DepositCreate

async def get_goals(usuario_id: Optional[int], db: AsyncSession) -> List[Goal]:
    query = select(Goal).order_by(desc(Goal.fecha_objetivo), Goal.id)
    if usuario_id is not None:
        query = query.where(Goal.usuario_id == usuario_id)
    result = await db.execute(query)
    return result.scalars().all()

async def get_goal_by_id(goal_id: int, db: AsyncSession) -> Optional[Goal]:
    result = await db.execute(select(Goal).where(Goal.id == goal_id))
    return result.scalar_one_or_none()

async def create_goal(goal_in: GoalCreate, db: AsyncSession) -> Goal:
    new_goal = Goal(**goal_in.model_dump())
    db.add(new_goal)
    await db.commit()
    await db.refresh(new_goal)
    return new_goal

async def update_goal(goal: Goal, goal_in: GoalUpdate, db: AsyncSession) -> Goal:
    for field, value in goal_in.model_dump(exclude_unset=True).items():
        setattr(goal, field, value)
    db.add(goal)
    await db.commit()
    await db.refresh(goal)
    return goal

async def delete_goal(goal: Goal, db: AsyncSession) -> None:
    # Deposit history goes with the goal; payments keep their row with meta_id cleared
    await db.execute(delete(GoalDeposit).where(GoalDeposit.meta_id == goal.id))
    await db.delete(goal)
    await db.commit()

# ────────────────────────────────────────────────────────────────────────────────
# Settlement-facing operations: these flush but never commit, the caller owns
# the transaction
# ────────────────────────────────────────────────────────────────────────────────
async def increase_goal_amount(goal_id: int, amount: float, db: AsyncSession) -> Optional[Goal]:
    """Atomically add ``amount`` to the goal's saved amount in the database."""
    result = await db.execute(
        update(Goal)
        .where(Goal.id == goal_id)
        .values(monto_actual=Goal.monto_actual + amount)
        .returning(Goal)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()

async def get_automatic_eligible_goals(usuario_id: int, db: AsyncSession) -> List[Goal]:
    result = await db.execute(
        select(Goal)
        .where(
            Goal.usuario_id == usuario_id,
            Goal.tipo_deposito == DepositMode.automatico,
            Goal.monto_automatico > 0,
            Goal.monto_actual < Goal.monto_objetivo,
        )
        .order_by(Goal.id)
    )
    return result.scalars().all()

# ────────────────────────────────────────────────────────────────────────────────
# Deposits
# ────────────────────────────────────────────────────────────────────────────────
async def get_deposits_for_goal(goal_id: int, db: AsyncSession) -> List[GoalDeposit]:
    result = await db.execute(
        select(GoalDeposit)
        .where(GoalDeposit.meta_id == goal_id)
        .order_by(desc(GoalDeposit.fecha), desc(GoalDeposit.id))
    )
    return result.scalars().all()

async def create_deposit(goal: Goal, deposit_in: DepositCreate, db: AsyncSession) -> GoalDeposit:
    deposit = GoalDeposit(
        meta_id=goal.id,
        monto=deposit_in.monto,
        fecha=deposit_in.fecha or datetime.utcnow(),
        descripcion=deposit_in.descripcion,
        tipo=deposit_in.tipo,
    )
    db.add(deposit)
    await increase_goal_amount(goal.id, deposit_in.monto, db)
    await db.commit()
    await db.refresh(deposit)
    return deposit
