# savings_pay/utils/vault.py
"""
Reference vault: turns raw card/account details into an opaque token.

Only the last four characters of a number and the holder name are kept.
Full card numbers, CVVs and account numbers are validated and then dropped;
they are never stored, returned or logged.
"""
import time
import uuid
import threading
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from savings_pay.core.exceptions import ValidationError
from savings_pay.crud.payment_method import (
    create_payment_method,
    get_payment_method,
    get_payment_methods_for_user,
    count_payment_methods,
)
from savings_pay.models.payment_method import MethodKind
from savings_pay.schemas.payment_method import PaymentMethodRegister, PaymentReference

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "REF_"
CARD_NUMBER_LENGTH = 16
CVV_LENGTH = 3


def generate_reference() -> str:
    return f"{REFERENCE_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def mask_number(number: Optional[str]) -> str:
    return number[-4:] if number else ""


def validate_method_details(method_in: PaymentMethodRegister) -> str:
    """Check the raw details and return the masked identifier."""
    if method_in.tipo_metodo == MethodKind.tarjeta:
        card = method_in.numero_tarjeta or ""
        if len(card) != CARD_NUMBER_LENGTH or not card.isdigit():
            raise ValidationError("Número de tarjeta inválido")
        cvv = method_in.cvv or ""
        if len(cvv) != CVV_LENGTH or not cvv.isdigit():
            raise ValidationError("CVV inválido")
        if not method_in.fecha_vencimiento:
            raise ValidationError("Fecha de vencimiento requerida")
        return mask_number(card)

    if not method_in.numero_cuenta:
        raise ValidationError("Número de cuenta requerido")
    return mask_number(method_in.numero_cuenta)


class ReferenceVault(ABC):
    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock

    async def register(self, method_in: PaymentMethodRegister) -> PaymentReference:
        ultimos_digitos = validate_method_details(method_in)
        reference = await self._store(
            usuario_id=method_in.usuario_id,
            tipo_metodo=method_in.tipo_metodo,
            ultimos_digitos=ultimos_digitos,
            nombre_titular=method_in.nombre_titular,
            banco=method_in.banco,
            fecha_registro=self._clock(),
        )
        logger.info(
            f"Registered {reference.tipo_metodo.value} ending {ultimos_digitos} "
            f"for user {reference.usuario_id} as {reference.referencia}"
        )
        return reference

    async def preferred_for_user(self, usuario_id: int) -> Optional[PaymentReference]:
        """
        The reference automatic deposits are charged to: the most recently
        registered one, ties broken by lowest token.
        """
        references = await self.list_for_user(usuario_id)
        return references[0] if references else None

    @abstractmethod
    async def _store(self, **fields) -> PaymentReference:
        """Persist a new masked reference under a fresh token."""
        ...

    @abstractmethod
    async def lookup(self, referencia: str) -> Optional[PaymentReference]:
        ...

    @abstractmethod
    async def list_for_user(self, usuario_id: int) -> List[PaymentReference]:
        """References owned by the user, in preferred order."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class InMemoryReferenceVault(ReferenceVault):
    """Process-lifetime storage. References are lost on restart."""

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        super().__init__(clock)
        self._references: Dict[str, PaymentReference] = {}
        self._lock = threading.Lock()

    async def _store(self, **fields) -> PaymentReference:
        with self._lock:
            referencia = generate_reference()
            while referencia in self._references:
                referencia = generate_reference()
            reference = PaymentReference(referencia=referencia, **fields)
            self._references[referencia] = reference
        return reference

    async def lookup(self, referencia: str) -> Optional[PaymentReference]:
        return self._references.get(referencia)

    async def list_for_user(self, usuario_id: int) -> List[PaymentReference]:
        with self._lock:
            owned = [r for r in self._references.values() if r.usuario_id == usuario_id]
        owned.sort(key=lambda r: r.referencia)
        owned.sort(key=lambda r: r.fecha_registro, reverse=True)
        return owned

    async def count(self) -> int:
        return len(self._references)


class DatabaseReferenceVault(ReferenceVault):
    """References in the ``metodos_pago`` table; each call uses its own session."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        super().__init__(clock)
        self._session_factory = session_factory

    async def _store(self, **fields) -> PaymentReference:
        async with self._session_factory() as db:
            method = await create_payment_method({"referencia": generate_reference(), **fields}, db)
            return PaymentReference.model_validate(method)

    async def lookup(self, referencia: str) -> Optional[PaymentReference]:
        async with self._session_factory() as db:
            method = await get_payment_method(referencia, db)
            return PaymentReference.model_validate(method) if method else None

    async def list_for_user(self, usuario_id: int) -> List[PaymentReference]:
        async with self._session_factory() as db:
            methods = await get_payment_methods_for_user(usuario_id, db)
            return [PaymentReference.model_validate(m) for m in methods]

    async def count(self) -> int:
        async with self._session_factory() as db:
            return await count_payment_methods(db)


def get_reference_vault(backend: str, session_factory: async_sessionmaker[AsyncSession]) -> ReferenceVault:
    if backend == "memory":
        logger.warning("Payment references are kept in memory and will not survive a restart")
        return InMemoryReferenceVault()
    return DatabaseReferenceVault(session_factory)
