"""Queues and tickets

Revision ID: 001_queues_and_tickets
Revises: 
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers
revision = '001_queues_and_tickets'
down_revision = None


def upgrade():
    op.create_table(
        'queues',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('description', sqlmodel.sql.sqltypes.AutoString(length=500), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_ticket_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('owner_id', 'name', name='uq_queue_owner_name'),
    )
    op.create_index('ix_queues_owner_id', 'queues', ['owner_id'])
    op.create_index('ix_queues_is_active', 'queues', ['is_active'])
    op.create_index('ix_queues_created_at', 'queues', ['created_at'])

    op.create_table(
        'tickets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('queue_id', sa.Uuid(), sa.ForeignKey('queues.id'), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('customer_name', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column(
            'status',
            sa.Enum('WAITING', 'SERVING', 'COMPLETED', 'CANCELLED', name='ticketstatus'),
            nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('called_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('wait_time', sa.Integer(), nullable=True),
    )
    op.create_index('ix_tickets_queue_id', 'tickets', ['queue_id'])
    op.create_index('ix_tickets_status', 'tickets', ['status'])
    op.create_index('ix_tickets_position', 'tickets', ['position'])
    op.create_index('ix_tickets_created_at', 'tickets', ['created_at'])


def downgrade():
    op.drop_index('ix_tickets_created_at', 'tickets')
    op.drop_index('ix_tickets_position', 'tickets')
    op.drop_index('ix_tickets_status', 'tickets')
    op.drop_index('ix_tickets_queue_id', 'tickets')
    op.drop_table('tickets')
    sa.Enum(name='ticketstatus').drop(op.get_bind(), checkfirst=True)

    op.drop_index('ix_queues_created_at', 'queues')
    op.drop_index('ix_queues_is_active', 'queues')
    op.drop_index('ix_queues_owner_id', 'queues')
    op.drop_table('queues')
