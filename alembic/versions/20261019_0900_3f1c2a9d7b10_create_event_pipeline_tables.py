"""create_event_pipeline_tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create groups, outbox, ledger and chat membership tables."""
    # Groups aggregate
    op.create_table(
        'groups',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Creation timestamp (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_groups')),
    )
    op.create_index(op.f('ix_groups_owner_id'), 'groups', ['owner_id'], unique=False)
    op.create_index(op.f('ix_groups_created_at'), 'groups', ['created_at'], unique=False)

    op.create_table(
        'group_members',
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v4 primary key'),
        sa.Column('group_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Creation timestamp (UTC)'),
        sa.ForeignKeyConstraint(
            ['group_id'],
            ['groups.id'],
            name=op.f('fk_group_members_group_id_groups'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_group_members')),
        sa.UniqueConstraint('group_id', 'user_id', name=op.f('uq_group_members_group_id')),
    )
    op.create_index(op.f('ix_group_members_group_id'), 'group_members', ['group_id'], unique=False)
    op.create_index(op.f('ix_group_members_created_at'), 'group_members', ['created_at'], unique=False)

    # Transactional outbox
    op.create_table(
        'outbox_messages',
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v4 primary key'),
        sa.Column('event_id', sa.Uuid(), nullable=False, comment='Domain event identifier'),
        sa.Column('event_type', sa.String(length=200), nullable=False, comment='Event type name and routing key'),
        sa.Column('event_version', sa.Integer(), nullable=False, comment='Event schema version'),
        sa.Column('payload', sa.Text(), nullable=False, comment='JSON-serialized event envelope'),
        sa.Column(
            'status',
            sa.Enum('Pending', 'Published', 'Failed', name='outbox_status', native_enum=False, length=16),
            nullable=False,
            comment='Delivery status',
        ),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True, comment='When the broker confirmed the publish'),
        sa.Column('retry_count', sa.Integer(), nullable=False, comment='Number of failed publish attempts'),
        sa.Column('error_message', sa.Text(), nullable=True, comment='Last publish error'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Creation timestamp (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_outbox_messages')),
        sa.UniqueConstraint('event_id', name=op.f('uq_outbox_messages_event_id')),
    )
    op.create_index(op.f('ix_outbox_messages_event_type'), 'outbox_messages', ['event_type'], unique=False)
    op.create_index(op.f('ix_outbox_messages_created_at'), 'outbox_messages', ['created_at'], unique=False)
    # Pending rows in publishing order
    op.create_index(
        'ix_outbox_messages_status_created_at',
        'outbox_messages',
        ['status', 'created_at'],
        unique=False,
    )

    # Idempotency ledger
    op.create_table(
        'processed_events',
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v4 primary key'),
        sa.Column('event_id', sa.Uuid(), nullable=False, comment='Consumed event identifier'),
        sa.Column('event_type', sa.String(length=100), nullable=False, comment='Event type name'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False, comment='When the event was processed (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_processed_events')),
        sa.UniqueConstraint('event_id', name=op.f('uq_processed_events_event_id')),
    )
    op.create_index(op.f('ix_processed_events_processed_at'), 'processed_events', ['processed_at'], unique=False)

    # Chat membership projection
    op.create_table(
        'chat_group_members',
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID v4 primary key'),
        sa.Column('group_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_chat_group_members')),
        sa.UniqueConstraint('group_id', 'user_id', name=op.f('uq_chat_group_members_group_id')),
    )
    op.create_index(op.f('ix_chat_group_members_group_id'), 'chat_group_members', ['group_id'], unique=False)
    op.create_index(op.f('ix_chat_group_members_user_id'), 'chat_group_members', ['user_id'], unique=False)


def downgrade() -> None:
    """Drop the event pipeline tables."""
    op.drop_index(op.f('ix_chat_group_members_user_id'), table_name='chat_group_members')
    op.drop_index(op.f('ix_chat_group_members_group_id'), table_name='chat_group_members')
    op.drop_table('chat_group_members')

    op.drop_index(op.f('ix_processed_events_processed_at'), table_name='processed_events')
    op.drop_table('processed_events')

    op.drop_index('ix_outbox_messages_status_created_at', table_name='outbox_messages')
    op.drop_index(op.f('ix_outbox_messages_created_at'), table_name='outbox_messages')
    op.drop_index(op.f('ix_outbox_messages_event_type'), table_name='outbox_messages')
    op.drop_table('outbox_messages')

    op.drop_index(op.f('ix_group_members_created_at'), table_name='group_members')
    op.drop_index(op.f('ix_group_members_group_id'), table_name='group_members')
    op.drop_table('group_members')

    op.drop_index(op.f('ix_groups_created_at'), table_name='groups')
    op.drop_index(op.f('ix_groups_owner_id'), table_name='groups')
    op.drop_table('groups')
