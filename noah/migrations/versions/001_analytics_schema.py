"""Analytics schema

Revision ID: 0001
Revises:
Create Date: 2025-10-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_sessions',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('session_fingerprint', sa.String(64), nullable=False, unique=True, index=True),
        sa.Column('environment', sa.String(32), nullable=False, server_default='development'),
        sa.Column('browser', sa.String(32), nullable=True),
        sa.Column('platform', sa.String(32), nullable=True),
        sa.Column('is_mobile', sa.Boolean(), default=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('last_seen', sa.DateTime(), default=sa.func.now()),
    )

    op.create_table(
        'conversations',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('session_id', sa.String(32), sa.ForeignKey('user_sessions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('conversation_sequence', sa.Integer(), nullable=False),
        sa.Column('initial_trust_level', sa.Integer(), server_default='50'),
        sa.Column('final_trust_level', sa.Integer(), nullable=True),
        sa.Column('skeptic_mode_enabled', sa.Boolean(), default=False),
        sa.Column('conversation_length', sa.Integer(), server_default='0'),
        sa.Column('conversation_duration_ms', sa.Integer(), server_default='0'),
        sa.Column('user_engagement_level', sa.String(16), server_default='low'),
        sa.Column('completion_status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('agent_strategy', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now()),
        sa.UniqueConstraint('session_id', 'conversation_sequence', name='uq_conversation_sequence'),
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('conversation_id', sa.String(32), sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('session_id', sa.String(32), sa.ForeignKey('user_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('message_sequence', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('content_length', sa.Integer(), server_default='0'),
        sa.Column('word_count', sa.Integer(), server_default='0'),
        sa.Column('message_type', sa.String(32), nullable=True),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        sa.Column('agent_involved', sa.String(16), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    op.create_table(
        'generated_tools',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('conversation_id', sa.String(32), sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('session_id', sa.String(32), sa.ForeignKey('user_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('message_id', sa.String(32), nullable=True),
        sa.Column('tool_hash', sa.String(64), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('content_length', sa.Integer(), server_default='0'),
        sa.Column('tool_type', sa.String(32), nullable=True),
        sa.Column('tool_category', sa.String(32), nullable=True),
        sa.Column('generation_time_ms', sa.Integer(), nullable=True),
        sa.Column('generation_agent', sa.String(16), nullable=True),
        sa.Column('user_message_length', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )
    op.create_index('ix_generated_tools_session_created', 'generated_tools', ['session_id', 'created_at'])

    op.create_table(
        'tool_usage_events',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('tool_id', sa.String(32), sa.ForeignKey('generated_tools.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('session_id', sa.String(32), nullable=False),
        sa.Column('event_type', sa.String(16), nullable=False),
        sa.Column('usage_context', sa.String(32), nullable=True),
        sa.Column('interaction_duration_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('tool_usage_events')
    op.drop_index('ix_generated_tools_session_created', table_name='generated_tools')
    op.drop_table('generated_tools')
    op.drop_table('messages')
    op.drop_table('conversations')
    op.drop_table('user_sessions')
