# savings_pay/crud/payment.py
"""
Payment ledger: rows are inserted and read, never updated or deleted.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func, case
from savings_pay.core.db_utils import with_db_retry
from savings_pay.models.goal import Goal
from savings_pay.models.payment import Payment, PaymentState
from typing import Any, Dict, List, Optional, Tuple

async def append_payment(payment_data: Dict[str, Any], db: AsyncSession) -> Payment:
    """Insert a payment row inside the caller's transaction and return it with its id."""
    payment = Payment(**payment_data)
    db.add(payment)
    await db.flush()
    await db.refresh(payment)
    return payment

@with_db_retry()
async def list_payments(usuario_id: Optional[int], db: AsyncSession) -> List[Tuple[Payment, Optional[str]]]:
    """Payments newest first, each paired with the name of the goal it paid into."""
    query = (
        select(Payment, Goal.nombre)
        .outerjoin(Goal, Payment.meta_id == Goal.id)
        .order_by(desc(Payment.fecha_creacion), desc(Payment.id))
    )
    if usuario_id is not None:
        query = query.where(Payment.usuario_id == usuario_id)
    result = await db.execute(query)
    return [(payment, goal_name) for payment, goal_name in result.all()]

@with_db_retry()
async def count_payments(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Payment.id)))
    return result.scalar_one()

@with_db_retry()
async def get_payment_stats(db: AsyncSession) -> Dict[str, Any]:
    completed = Payment.estado == PaymentState.completado
    result = await db.execute(
        select(
            func.count(Payment.id),
            func.count(case((completed, 1))),
            func.count(case((Payment.estado == PaymentState.rechazado, 1))),
            func.coalesce(func.sum(case((completed, Payment.monto), else_=0.0)), 0.0),
        )
    )
    total, completados, rechazados, monto = result.one()
    return {
        "total_pagos": total,
        "pagos_completados": completados,
        "pagos_rechazados": rechazados,
        "monto_total_completado": float(monto or 0.0),
    }
