"""create_orders_and_webhook_logs

Revision ID: 3c1f2a9b7d41
Revises:
Create Date: 2026-09-12 09:30:12.418204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f2a9b7d41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=100), nullable=False, comment='订单ID'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending', comment='订单状态: pending/paid/delivered/cancelled'),
        sa.Column('payment_status', sa.String(length=50), nullable=True, comment='网关最近一次返回的原始支付状态'),
        sa.Column('payment_external_id', sa.String(length=100), nullable=True, comment='网关支付ID'),
        sa.Column('payment_method', sa.String(length=50), nullable=True, comment='支付方式'),
        sa.Column('payment_details', sa.JSON(), nullable=True, comment='最近一次对账的支付快照'),
        sa.Column('payment_confirmed_at', sa.DateTime(timezone=True), nullable=True, comment='最近一次对账时间'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.Column('metadata', sa.JSON(), nullable=True, comment='扩展元数据'),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        comment='订单表，对账只更新支付字段组'
    )
    op.create_index('ix_orders_status', 'orders', ['status'], unique=False)
    op.create_index('ix_orders_payment_external_id', 'orders', ['payment_external_id'], unique=False)
    op.create_index('ix_orders_status_created_at', 'orders', ['status', 'created_at'], unique=False)

    op.create_table(
        'webhook_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='记录时间'),
        sa.Column('event_kind', sa.String(length=100), nullable=False, comment='事件类型，如 payment.updated'),
        sa.Column('external_payment_id', sa.String(length=100), nullable=False, comment='网关支付ID或 unknown'),
        sa.Column('outcome', sa.String(length=20), nullable=False, comment='received/success/info/error'),
        sa.Column('order_id', sa.String(length=100), nullable=True, comment='关联订单ID'),
        sa.Column('detected_format', sa.String(length=20), nullable=True, comment='feed/standard/api_v2/unknown'),
        sa.Column('request_id', sa.String(length=64), nullable=True, comment='请求追踪ID'),
        sa.Column('detail', sa.JSON(), nullable=True, comment='处理详情'),
        sa.PrimaryKeyConstraint('id', name='pk_webhook_logs'),
        comment='Webhook 审计日志（只追加）'
    )
    op.create_index('ix_webhook_logs_timestamp', 'webhook_logs', ['timestamp'], unique=False)
    op.create_index('ix_webhook_logs_external_payment_id', 'webhook_logs', ['external_payment_id'], unique=False)
    op.create_index('ix_webhook_logs_outcome', 'webhook_logs', ['outcome'], unique=False)
    op.create_index('ix_webhook_logs_order_id', 'webhook_logs', ['order_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_webhook_logs_order_id', table_name='webhook_logs')
    op.drop_index('ix_webhook_logs_outcome', table_name='webhook_logs')
    op.drop_index('ix_webhook_logs_external_payment_id', table_name='webhook_logs')
    op.drop_index('ix_webhook_logs_timestamp', table_name='webhook_logs')
    op.drop_table('webhook_logs')

    op.drop_index('ix_orders_status_created_at', table_name='orders')
    op.drop_index('ix_orders_payment_external_id', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_table('orders')
