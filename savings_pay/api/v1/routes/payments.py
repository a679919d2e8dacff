# savings_pay/api/v1/routes/payments.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from savings_pay.schemas.payment import (
    PaymentCreate,
    PaymentRead,
    PaymentHistoryRead,
    SettledPaymentResponse,
    AutomaticBatchRequest,
    AutomaticBatchResponse,
    BalanceResponse,
    PaymentStats,
    PaymentDiagnostics,
)
from savings_pay.schemas.payment_method import (
    PaymentMethodRegister,
    PaymentMethodRegistered,
    PaymentReference,
)
from savings_pay.crud.payment import list_payments, get_payment_stats, count_payments
from savings_pay.core.database import get_async_session
from savings_pay.core.exceptions import PaymentDeclined
from savings_pay.api.deps import get_settlement_engine, get_reference_vault, get_balance_ledger
from savings_pay.utils.balance import BalanceLedger
from savings_pay.utils.settlement import SettlementEngine
from savings_pay.utils.vault import ReferenceVault

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pagos", tags=["pagos"])

@router.get("", response_model=List[PaymentHistoryRead])
async def read_payments(
    usuario_id: Optional[int] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """Payment history, newest first, with the name of the goal each one paid into."""
    rows = await list_payments(usuario_id, db)
    logger.info(f"Found {len(rows)} payments")
    return [
        PaymentHistoryRead(**PaymentRead.model_validate(payment).model_dump(), meta_nombre=goal_name)
        for payment, goal_name in rows
    ]

@router.post(
    "/registrar-metodo-pago",
    response_model=PaymentMethodRegistered,
    status_code=status.HTTP_201_CREATED,
)
async def register_payment_method(
    method_in: PaymentMethodRegister,
    vault: ReferenceVault = Depends(get_reference_vault),
):
    """
    Exchange card or account details for an opaque payment reference.

    - **tarjeta**: `numero_tarjeta` (16 digits), `cvv` (3 digits) and `fecha_vencimiento` are required
    - **cuenta_bancaria**: `numero_cuenta` is required

    Only the last four digits are kept.
    """
    reference = await vault.register(method_in)
    return PaymentMethodRegistered(
        referencia_pago=reference.referencia,
        ultimos_digitos=reference.ultimos_digitos,
    )

@router.post("", response_model=SettledPaymentResponse)
async def create_payment(
    payment_in: PaymentCreate,
    db: AsyncSession = Depends(get_async_session),
    engine: SettlementEngine = Depends(get_settlement_engine),
):
    """
    Settle a payment against the simulated bank balance.

    Answers 400 with the recorded payment when the bank declines it, and 400
    with `saldo_disponible`/`monto_solicitado` when the balance does not cover it.
    """
    result = await engine.settle(
        db,
        usuario_id=payment_in.usuario_id,
        monto=payment_in.monto,
        descripcion=payment_in.descripcion,
        tipo=payment_in.tipo,
        meta_id=payment_in.meta_id,
        referencia_pago=payment_in.referencia_pago,
        es_automatico=payment_in.es_automatico,
    )
    payment = PaymentRead.model_validate(result.payment).model_dump()
    if result.error is not None:
        raise PaymentDeclined(
            result.error.message,
            details={**payment, "saldo_actual": result.saldo_actual},
        )
    return SettledPaymentResponse(**payment, saldo_actual=result.saldo_actual)

@router.post("/procesar-automaticos", response_model=AutomaticBatchResponse)
async def process_automatic_payments(
    batch_in: AutomaticBatchRequest,
    db: AsyncSession = Depends(get_async_session),
    engine: SettlementEngine = Depends(get_settlement_engine),
):
    """Run the automatic deposit of every eligible goal of the user, one after the other."""
    return await engine.settle_automatic_batch(db, batch_in.usuario_id)

@router.get("/metodos-pago/{usuario_id}", response_model=List[PaymentReference])
async def read_payment_methods(
    usuario_id: int,
    vault: ReferenceVault = Depends(get_reference_vault),
):
    methods = await vault.list_for_user(usuario_id)
    logger.info(f"Found {len(methods)} payment methods for user {usuario_id}")
    return methods

@router.get("/saldo", response_model=BalanceResponse)
async def read_balance(ledger: BalanceLedger = Depends(get_balance_ledger)):
    return BalanceResponse(saldo=ledger.current())

@router.get("/estadisticas", response_model=PaymentStats)
async def read_payment_stats(db: AsyncSession = Depends(get_async_session)):
    return PaymentStats(**await get_payment_stats(db))

@router.get("/diagnostico", response_model=PaymentDiagnostics)
async def read_diagnostics(
    db: AsyncSession = Depends(get_async_session),
    engine: SettlementEngine = Depends(get_settlement_engine),
):
    """Record count, balance and number of active references. Tokens are not listed."""
    return PaymentDiagnostics(
        total_registros=await count_payments(db),
        saldo_actual=engine.ledger.current(),
        referencias_activas=await engine.vault.count(),
    )
