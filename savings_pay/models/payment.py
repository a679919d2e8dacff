# savings_pay/models/payment.py
import enum
from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Integer, Boolean, Enum
from savings_pay.core.database import Base

class PaymentState(str, enum.Enum):
    completado = "completado"
    rechazado = "rechazado"

class PaymentChannel(str, enum.Enum):
    tarjeta = "tarjeta"
    transferencia = "transferencia"

GOAL_SAVINGS_TYPE = "meta_ahorro"

class Payment(Base):
    """One settlement attempt. Rows are written once and never updated."""

    __tablename__ = "pagos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    usuario_id = Column(Integer, nullable=False, index=True)
    # History outlives the goal it paid into
    meta_id = Column(Integer, ForeignKey("metas.id", ondelete="SET NULL"), nullable=True, index=True)
    monto = Column(Float, nullable=False)
    descripcion = Column(String(length=255), nullable=True)
    tipo = Column(String(length=50), nullable=False, default=GOAL_SAVINGS_TYPE)
    metodo_pago = Column(
        Enum(PaymentChannel, name="metodo_pago", native_enum=False),
        nullable=False,
        default=PaymentChannel.transferencia,
    )
    referencia_pago = Column(String(length=64), nullable=True)
    # Last four digits only
    numero_tarjeta = Column(String(length=4), nullable=True)
    nombre_titular = Column(String(length=150), nullable=True)
    estado = Column(Enum(PaymentState, name="estado_pago", native_enum=False), nullable=False)
    saldo_anterior = Column(Float, nullable=False)
    saldo_posterior = Column(Float, nullable=False)
    automatico = Column(Boolean, nullable=False, default=False)
    fecha_creacion = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<Payment id={self.id} monto={self.monto} estado={self.estado} usuario_id={self.usuario_id}>"
