# savings_pay/models/goal.py
import enum
from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, Date, ForeignKey, Integer, Enum
from savings_pay.core.database import Base

class DepositMode(str, enum.Enum):
    manual = "manual"
    automatico = "automatico"

class Goal(Base):
    __tablename__ = "metas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # usuarios is owned by the user service; no FK so goals can be created independently
    usuario_id = Column(Integer, nullable=False, index=True)
    nombre = Column(String(length=150), nullable=False)
    monto_objetivo = Column(Float, nullable=False)
    # Only grows through deposits and settled payments, or an explicit update
    monto_actual = Column(Float, nullable=False, default=0.0)
    fecha_objetivo = Column(Date, nullable=True)
    categoria = Column(String(length=100), nullable=True)
    descripcion = Column(String(length=255), nullable=True)
    tipo_deposito = Column(
        Enum(DepositMode, name="tipo_deposito", native_enum=False),
        nullable=False,
        default=DepositMode.manual,
    )
    frecuencia_automatica = Column(String(length=30), nullable=True)
    monto_automatico = Column(Float, nullable=True)

    def __repr__(self):
        return f"<Goal nombre={self.nombre} actual={self.monto_actual}/{self.monto_objetivo} usuario_id={self.usuario_id}>"

class GoalDeposit(Base):
    __tablename__ = "depositos_metas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meta_id = Column(Integer, ForeignKey("metas.id", ondelete="CASCADE"), nullable=False, index=True)
    monto = Column(Float, nullable=False)
    fecha = Column(DateTime, nullable=False, default=datetime.utcnow)
    descripcion = Column(String(length=255), nullable=True)
    tipo = Column(String(length=30), nullable=False, default="manual")

    def __repr__(self):
        return f"<GoalDeposit meta_id={self.meta_id} monto={self.monto}>"
