# savings_pay/utils/settlement.py
"""
Settlement engine: decides whether a payment goes through and applies it.

An attempt runs Requested -> Validating -> Accepted | Rejected:

* insufficient funds, an unusable reference or an unknown goal stop the
  attempt before anything is written;
* otherwise the (simulated) bank decides, and exactly one payment row is
  written, ``completado`` or ``rechazado``.

Accepted attempts raise the goal's saved amount, debit the balance ledger and
append the payment in one database transaction. If that transaction cannot
be committed the debit is reversed, so the ledger never drifts from history.
"""
import asyncio
import logging
import math
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from savings_pay.core.exceptions import (
    GoalNotFound,
    InsufficientFunds,
    InvalidReference,
    NoPaymentMethod,
    PaymentDeclined,
    SettlementTimeout,
    ValidationError,
)
from savings_pay.crud import goal as goal_crud
from savings_pay.crud import payment as payment_crud
from savings_pay.models.payment import GOAL_SAVINGS_TYPE, Payment, PaymentChannel, PaymentState
from savings_pay.schemas.goal import GoalRead
from savings_pay.schemas.payment import AutomaticBatchEntry, AutomaticBatchResponse
from savings_pay.schemas.payment_method import PaymentReference
from savings_pay.utils.balance import BalanceLedger
from savings_pay.utils.vault import ReferenceVault

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettlementContext(BaseModel):
    """What the bank sees when deciding on an attempt."""
    usuario_id: int
    meta_id: Optional[int] = None
    monto: float
    es_automatico: bool
    metodo_pago: PaymentChannel


OutcomeDecider = Callable[[SettlementContext], bool]


class RandomDecider:
    """Accepts a fixed share of attempts, automatic ones more often than manual ones."""

    def __init__(self, manual_rate: float, automatic_rate: float, rng: Optional[random.Random] = None):
        self.manual_rate = manual_rate
        self.automatic_rate = automatic_rate
        self._rng = rng or random.Random()

    def __call__(self, context: SettlementContext) -> bool:
        rate = self.automatic_rate if context.es_automatico else self.manual_rate
        return self._rng.random() < rate


class SettlementResult:
    def __init__(self, payment: Payment, saldo_actual: float, error: Optional[PaymentDeclined] = None):
        self.payment = payment
        self.saldo_actual = saldo_actual
        self.error = error

    @property
    def accepted(self) -> bool:
        return self.error is None


class SettlementEngine:
    def __init__(
        self,
        ledger: BalanceLedger,
        vault: ReferenceVault,
        decide: OutcomeDecider,
        goals: Any = goal_crud,
        payments: Any = payment_crud,
        timeout_seconds: float = 10.0,
    ):
        self.ledger = ledger
        self.vault = vault
        self.decide = decide
        # Anything exposing the goal/payment crud functions will do
        self.goals = goals
        self.payments = payments
        self.timeout_seconds = timeout_seconds

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.warning(f"Store did not answer within {self.timeout_seconds}s")
            raise SettlementTimeout() from e

    # ────────────────────────────────────────────────────────────────────────
    # Single payment
    # ────────────────────────────────────────────────────────────────────────
    async def settle(
        self,
        db: AsyncSession,
        usuario_id: int,
        monto: float,
        descripcion: Optional[str] = None,
        tipo: str = GOAL_SAVINGS_TYPE,
        meta_id: Optional[int] = None,
        referencia_pago: Optional[str] = None,
        es_automatico: bool = False,
    ) -> SettlementResult:
        """
        Settle one payment against the mock balance.

        Raises:
            ValidationError: amount is not a finite number.
            InsufficientFunds: amount is not positive or exceeds the balance.
                Nothing is recorded.
            InvalidReference: a manual attempt named a token that is unknown
                or owned by another user.
            GoalNotFound: ``meta_id`` does not name one of the user's goals.
            SettlementTimeout: the store did not answer in time; nothing was
                recorded and the balance is unchanged.

        A bank decline is not raised: the rejected payment is recorded and
        returned with ``error`` set.
        """
        logger.info(
            f"Settling payment for user {usuario_id}: monto={monto} meta_id={meta_id} "
            f"automatico={es_automatico}"
        )
        if not math.isfinite(monto):
            raise ValidationError("Monto inválido", details={"monto_solicitado": str(monto)})
        available = self.ledger.current()
        if monto <= 0 or monto > available:
            logger.info(f"Insufficient funds for user {usuario_id}: requested {monto}, available {available}")
            raise InsufficientFunds(available=available, requested=monto)

        reference = await self._resolve_reference(usuario_id, referencia_pago, es_automatico)

        if meta_id is not None:
            goal = await self._bounded(self.goals.get_goal_by_id(meta_id, db))
            if goal is None or goal.usuario_id != usuario_id:
                raise GoalNotFound(meta_id)

        metodo_pago = PaymentChannel.tarjeta if reference and reference.is_card else PaymentChannel.transferencia
        record = {
            "usuario_id": usuario_id,
            "meta_id": meta_id,
            "monto": monto,
            "descripcion": descripcion,
            "tipo": tipo,
            "metodo_pago": metodo_pago,
            "referencia_pago": referencia_pago,
            "numero_tarjeta": reference.ultimos_digitos if reference else None,
            "nombre_titular": reference.nombre_titular if reference else None,
            "automatico": es_automatico,
        }

        context = SettlementContext(
            usuario_id=usuario_id,
            meta_id=meta_id,
            monto=monto,
            es_automatico=es_automatico,
            metodo_pago=metodo_pago,
        )
        if self.decide(context):
            return await self._accept(db, record)
        return await self._reject(db, record)

    async def _resolve_reference(
        self, usuario_id: int, referencia_pago: Optional[str], es_automatico: bool
    ) -> Optional[PaymentReference]:
        if not referencia_pago:
            return None
        reference = await self._bounded(self.vault.lookup(referencia_pago))
        if reference is not None and reference.usuario_id == usuario_id:
            return reference
        if es_automatico:
            # Automatic deposits are charged by the batch itself; a stale token only loses the masked details
            return None
        logger.info(f"Rejected reference {referencia_pago} for user {usuario_id}")
        raise InvalidReference()

    async def _accept(self, db: AsyncSession, record: Dict[str, Any]) -> SettlementResult:
        monto = record["monto"]
        debit = None
        try:
            if record["meta_id"] is not None and record["tipo"] == GOAL_SAVINGS_TYPE:
                goal = await self._bounded(self.goals.increase_goal_amount(record["meta_id"], monto, db))
                if goal is None:
                    raise GoalNotFound(record["meta_id"])

            debit = self.ledger.try_debit(monto)
            if debit is None:
                # Another request spent the funds after the initial check
                raise InsufficientFunds(available=self.ledger.current(), requested=monto)
            saldo_anterior, saldo_posterior = debit

            payment = await self._bounded(self.payments.append_payment({
                **record,
                "estado": PaymentState.completado,
                "saldo_anterior": saldo_anterior,
                "saldo_posterior": saldo_posterior,
            }, db))
            await self._bounded(db.commit())
        except (Exception, asyncio.CancelledError):
            # Reverse the debit first; the rollback itself may fail on a dead connection
            if debit is not None:
                self.ledger.credit(monto)
            await db.rollback()
            raise

        logger.info(f"Payment {payment.id} completed, balance {saldo_anterior:.2f} -> {saldo_posterior:.2f}")
        return SettlementResult(payment, saldo_posterior)

    async def _reject(self, db: AsyncSession, record: Dict[str, Any]) -> SettlementResult:
        saldo = self.ledger.current()
        try:
            payment = await self._bounded(self.payments.append_payment({
                **record,
                "estado": PaymentState.rechazado,
                "saldo_anterior": saldo,
                "saldo_posterior": saldo,
            }, db))
            await self._bounded(db.commit())
        except (Exception, asyncio.CancelledError):
            await db.rollback()
            raise

        if record["automatico"]:
            error = PaymentDeclined("Pago automático rechazado por el banco")
        else:
            error = PaymentDeclined()
        logger.info(f"Payment {payment.id} declined by the bank")
        return SettlementResult(payment, saldo, error)

    # ────────────────────────────────────────────────────────────────────────
    # Automatic deposits
    # ────────────────────────────────────────────────────────────────────────
    async def settle_automatic_batch(self, db: AsyncSession, usuario_id: int) -> AutomaticBatchResponse:
        """
        Run an automatic deposit for every eligible goal of the user.

        Goals are settled one after the other against the same ledger, so a
        deposit can be refused for lack of funds spent by an earlier one in
        the same batch. Per-goal failures become result entries; only a
        missing payment method or a store timeout aborts the batch.
        """
        reference = await self._bounded(self.vault.preferred_for_user(usuario_id))
        if reference is None:
            raise NoPaymentMethod()

        rows = await self._bounded(self.goals.get_automatic_eligible_goals(usuario_id, db))
        # A rollback in one deposit expires every instance in the session, so
        # read what the batch needs before settling anything
        goals = [GoalRead.model_validate(row) for row in rows]
        logger.info(f"Processing {len(goals)} automatic deposits for user {usuario_id} via {reference.referencia}")

        resultados: List[AutomaticBatchEntry] = []
        for goal in goals:
            resultados.append(await self._settle_goal(db, usuario_id, goal, reference))

        saldo = self.ledger.current()
        completed = sum(1 for r in resultados if r.estado == PaymentState.completado)
        logger.info(f"Automatic deposits for user {usuario_id}: {completed}/{len(resultados)} completed, balance {saldo:.2f}")
        return AutomaticBatchResponse(procesados=len(resultados), resultados=resultados, saldo_actual=saldo)

    async def _settle_goal(
        self, db: AsyncSession, usuario_id: int, goal: GoalRead, reference: PaymentReference
    ) -> AutomaticBatchEntry:
        meta_id, meta_nombre, monto = goal.id, goal.nombre, goal.monto_automatico
        try:
            result = await self.settle(
                db,
                usuario_id=usuario_id,
                monto=monto,
                descripcion=f"Depósito automático - {meta_nombre}",
                tipo=GOAL_SAVINGS_TYPE,
                meta_id=meta_id,
                referencia_pago=reference.referencia,
                es_automatico=True,
            )
        except InsufficientFunds as e:
            return AutomaticBatchEntry(
                meta_id=meta_id, meta_nombre=meta_nombre, monto=monto,
                estado=PaymentState.rechazado, error=e.message, saldo_disponible=e.available,
            )
        except GoalNotFound as e:
            return AutomaticBatchEntry(
                meta_id=meta_id, meta_nombre=meta_nombre, monto=monto,
                estado=PaymentState.rechazado, error=e.message,
            )

        return AutomaticBatchEntry(
            meta_id=meta_id,
            meta_nombre=meta_nombre,
            monto=monto,
            estado=result.payment.estado,
            pago_id=result.payment.id,
            error=result.error.message if result.error else None,
            saldo_actual=result.saldo_actual,
        )
