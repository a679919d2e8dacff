# savings_pay/crud/payment_method.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func
from savings_pay.models.payment_method import PaymentMethod
from typing import Any, Dict, List, Optional

async def create_payment_method(method_data: Dict[str, Any], db: AsyncSession) -> PaymentMethod:
    method = PaymentMethod(**method_data)
    db.add(method)
    await db.commit()
    await db.refresh(method)
    return method

async def get_payment_method(referencia: str, db: AsyncSession) -> Optional[PaymentMethod]:
    result = await db.execute(select(PaymentMethod).where(PaymentMethod.referencia == referencia))
    return result.scalar_one_or_none()

async def get_payment_methods_for_user(usuario_id: int, db: AsyncSession) -> List[PaymentMethod]:
    """Most recently registered first; ties resolved by lowest reference."""
    result = await db.execute(
        select(PaymentMethod)
        .where(PaymentMethod.usuario_id == usuario_id)
        .order_by(desc(PaymentMethod.fecha_registro), PaymentMethod.referencia)
    )
    return result.scalars().all()

async def count_payment_methods(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(PaymentMethod.referencia)))
    return result.scalar_one()
