# savings_pay/schemas/payment.py
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from savings_pay.models.payment import PaymentChannel, PaymentState, GOAL_SAVINGS_TYPE

class PaymentCreate(BaseModel):
    usuario_id: int
    meta_id: Optional[int] = None
    # Non-positive amounts are answered as insufficient funds by the engine
    monto: float = Field(..., allow_inf_nan=False)
    descripcion: Optional[str] = None
    tipo: str = GOAL_SAVINGS_TYPE
    referencia_pago: Optional[str] = None
    es_automatico: bool = False

class PaymentRead(BaseModel):
    id: int
    usuario_id: int
    meta_id: Optional[int] = None
    monto: float
    descripcion: Optional[str] = None
    tipo: str
    metodo_pago: PaymentChannel
    referencia_pago: Optional[str] = None
    numero_tarjeta: Optional[str] = None
    nombre_titular: Optional[str] = None
    estado: PaymentState
    saldo_anterior: float
    saldo_posterior: float
    automatico: bool
    fecha_creacion: datetime

    class Config:
        from_attributes = True

class PaymentHistoryRead(PaymentRead):
    meta_nombre: Optional[str] = None

class SettledPaymentResponse(PaymentRead):
    saldo_actual: float
    mensaje: str = "Pago procesado exitosamente"

class AutomaticBatchRequest(BaseModel):
    usuario_id: int

class AutomaticBatchEntry(BaseModel):
    meta_id: int
    meta_nombre: str
    monto: float
    estado: PaymentState
    pago_id: Optional[int] = None
    error: Optional[str] = None
    saldo_actual: Optional[float] = None
    saldo_disponible: Optional[float] = None

class AutomaticBatchResponse(BaseModel):
    procesados: int
    resultados: List[AutomaticBatchEntry]
    saldo_actual: float

class BalanceResponse(BaseModel):
    saldo: float

class PaymentStats(BaseModel):
    total_pagos: int = 0
    pagos_completados: int = 0
    pagos_rechazados: int = 0
    monto_total_completado: float = Field(0.0, description="Sum of settled amounts")

class PaymentDiagnostics(BaseModel):
    total_registros: int
    saldo_actual: float
    referencias_activas: int
