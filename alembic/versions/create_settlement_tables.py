"""create settlement tables

Revision ID: create_settlement_tables
Revises:
Create Date: 2025-09-01

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_settlement_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'metas',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('usuario_id', sa.Integer, nullable=False, index=True),
        sa.Column('nombre', sa.String(150), nullable=False),
        sa.Column('monto_objetivo', sa.Float, nullable=False),
        sa.Column('monto_actual', sa.Float, nullable=False, server_default='0'),
        sa.Column('fecha_objetivo', sa.Date, nullable=True),
        sa.Column('categoria', sa.String(100), nullable=True),
        sa.Column('descripcion', sa.String(255), nullable=True),
        sa.Column('tipo_deposito', sa.String(10), nullable=False, server_default='manual'),
        sa.Column('frecuencia_automatica', sa.String(30), nullable=True),
        sa.Column('monto_automatico', sa.Float, nullable=True),
    )
    op.create_table(
        'depositos_metas',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('meta_id', sa.Integer, sa.ForeignKey('metas.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('monto', sa.Float, nullable=False),
        sa.Column('fecha', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('descripcion', sa.String(255), nullable=True),
        sa.Column('tipo', sa.String(30), nullable=False, server_default='manual'),
    )
    op.create_table(
        'pagos',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('usuario_id', sa.Integer, nullable=False, index=True),
        sa.Column('meta_id', sa.Integer, sa.ForeignKey('metas.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('monto', sa.Float, nullable=False),
        sa.Column('descripcion', sa.String(255), nullable=True),
        sa.Column('tipo', sa.String(50), nullable=False, server_default='meta_ahorro'),
        sa.Column('metodo_pago', sa.String(13), nullable=False, server_default='transferencia'),
        sa.Column('referencia_pago', sa.String(64), nullable=True),
        sa.Column('numero_tarjeta', sa.String(4), nullable=True),
        sa.Column('nombre_titular', sa.String(150), nullable=True),
        sa.Column('estado', sa.String(10), nullable=False),
        sa.Column('saldo_anterior', sa.Float, nullable=False),
        sa.Column('saldo_posterior', sa.Float, nullable=False),
        sa.Column('automatico', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('fecha_creacion', sa.DateTime, nullable=False, server_default=sa.func.now(), index=True),
    )
    op.create_table(
        'metodos_pago',
        sa.Column('referencia', sa.String(64), primary_key=True),
        sa.Column('usuario_id', sa.Integer, nullable=False, index=True),
        sa.Column('tipo_metodo', sa.String(15), nullable=False),
        sa.Column('ultimos_digitos', sa.String(4), nullable=False, server_default=''),
        sa.Column('nombre_titular', sa.String(150), nullable=True),
        sa.Column('banco', sa.String(100), nullable=True),
        sa.Column('fecha_registro', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('metodos_pago')
    op.drop_table('pagos')
    op.drop_table('depositos_metas')
    op.drop_table('metas')
