# savings_pay/models/payment_method.py
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Enum
from savings_pay.core.database import Base

class MethodKind(str, enum.Enum):
    tarjeta = "tarjeta"
    cuenta_bancaria = "cuenta_bancaria"

class PaymentMethod(Base):
    """Durable store of payment references. Holds masked data only."""

    __tablename__ = "metodos_pago"

    referencia = Column(String(length=64), primary_key=True)
    usuario_id = Column(Integer, nullable=False, index=True)
    tipo_metodo = Column(Enum(MethodKind, name="tipo_metodo", native_enum=False), nullable=False)
    ultimos_digitos = Column(String(length=4), nullable=False, default="")
    nombre_titular = Column(String(length=150), nullable=True)
    banco = Column(String(length=100), nullable=True)
    fecha_registro = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<PaymentMethod referencia={self.referencia} tipo={self.tipo_metodo} usuario_id={self.usuario_id}>"
