# savings_pay/schemas/goal.py
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime

from savings_pay.models.goal import DepositMode

class GoalBase(BaseModel):
    usuario_id: int = Field(1, description="Owner of the goal")
    nombre: str = Field(..., min_length=1, max_length=150, description="E.g. Vacaciones 2025")
    monto_objetivo: float = Field(..., gt=0, allow_inf_nan=False)
    monto_actual: float = Field(0.0, ge=0, allow_inf_nan=False)
    fecha_objetivo: Optional[date] = None
    categoria: Optional[str] = None
    descripcion: Optional[str] = None
    tipo_deposito: DepositMode = DepositMode.manual
    frecuencia_automatica: Optional[str] = Field(None, description="E.g. semanal, mensual")
    monto_automatico: Optional[float] = Field(None, gt=0, allow_inf_nan=False)

class GoalCreate(GoalBase):
    @model_validator(mode="after")
    def _automatic_needs_amount(self):
        if self.tipo_deposito == DepositMode.automatico and not self.monto_automatico:
            raise ValueError("monto_automatico es obligatorio para metas automáticas")
        return self

class GoalUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=150)
    monto_objetivo: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    # Explicit adjustment of the saved amount
    monto_actual: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    fecha_objetivo: Optional[date] = None
    categoria: Optional[str] = None
    descripcion: Optional[str] = None
    tipo_deposito: Optional[DepositMode] = None
    frecuencia_automatica: Optional[str] = None
    monto_automatico: Optional[float] = Field(None, gt=0, allow_inf_nan=False)

class GoalRead(BaseModel):
    id: int
    usuario_id: int
    nombre: str
    monto_objetivo: float
    monto_actual: float
    fecha_objetivo: Optional[date] = None
    categoria: Optional[str] = None
    descripcion: Optional[str] = None
    tipo_deposito: DepositMode
    frecuencia_automatica: Optional[str] = None
    monto_automatico: Optional[float] = None

    class Config:
        from_attributes = True

class DepositCreate(BaseModel):
    monto: float = Field(..., gt=0, allow_inf_nan=False)
    fecha: Optional[datetime] = None
    descripcion: Optional[str] = None
    tipo: str = "manual"

class DepositRead(BaseModel):
    id: int
    meta_id: int
    monto: float
    fecha: datetime
    descripcion: Optional[str] = None
    tipo: str

    class Config:
        from_attributes = True
