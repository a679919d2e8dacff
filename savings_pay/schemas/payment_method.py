# savings_pay/schemas/payment_method.py
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime

from savings_pay.models.payment_method import MethodKind

class PaymentMethodRegister(BaseModel):
    """
    Raw method details as sent by the client. Shape rules (16-digit card,
    3-digit CVV, ...) are enforced by the vault so they answer 400 with a
    specific message; nothing here is ever stored as-is.
    """
    usuario_id: int
    tipo_metodo: MethodKind
    numero_tarjeta: Optional[str] = None
    fecha_vencimiento: Optional[str] = None
    cvv: Optional[str] = None
    nombre_titular: Optional[str] = None
    numero_cuenta: Optional[str] = None
    banco: Optional[str] = None

class PaymentMethodRegistered(BaseModel):
    referencia_pago: str
    mensaje: str = "Método de pago registrado exitosamente"
    ultimos_digitos: str

class PaymentReference(BaseModel):
    """Masked view of a registered method, keyed by its opaque token."""
    referencia: str
    usuario_id: int
    tipo_metodo: MethodKind
    ultimos_digitos: str
    nombre_titular: Optional[str] = None
    banco: Optional[str] = None
    fecha_registro: datetime = Field(..., description="When the method was registered")

    class Config:
        from_attributes = True

    @property
    def is_card(self) -> bool:
        return self.tipo_metodo == MethodKind.tarjeta
