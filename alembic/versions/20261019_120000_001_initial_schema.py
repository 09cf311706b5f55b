"""Initial schema: profiles, chat rooms, messages, notifications, blocks.

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all initial tables."""

    # Profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('short_id', sa.String(16), nullable=False),
        sa.Column('creator_id', sa.Uuid(), nullable=False),
        sa.Column('matchmaker_id', sa.Uuid(), nullable=True),
        sa.Column('invitation_id', sa.Uuid(), nullable=True),
        sa.Column('target_id', sa.Uuid(), nullable=True),

        # Photos
        sa.Column('photo_url', sa.String(500), nullable=False),
        sa.Column('original_photo_url', sa.String(500), nullable=True),

        # Disclosed after reveal
        sa.Column('name', sa.String(50), nullable=True),
        sa.Column('instagram_id', sa.String(30), nullable=True),
        sa.Column('kakao_open_chat_id', sa.String(200), nullable=True),

        # Public attributes
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('gender', sa.String(10), nullable=False),
        sa.Column('occupation_category', sa.String(50), nullable=True),
        sa.Column('bio', sa.String(100), nullable=False),
        sa.Column('interest_tags', sa.JSON(), nullable=True),
        sa.Column('mbti', sa.String(4), nullable=True),
        sa.Column('music_genre', sa.String(30), nullable=True),

        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('chat_request_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            '(matchmaker_id IS NULL AND invitation_id IS NULL)'
            ' OR (matchmaker_id IS NOT NULL AND invitation_id IS NOT NULL)',
            name='profile_origin_check',
        ),
    )
    op.create_index('ix_profiles_short_id', 'profiles', ['short_id'], unique=True)
    op.create_index('ix_profiles_creator_id', 'profiles', ['creator_id'])
    op.create_index('ix_profiles_matchmaker_id', 'profiles', ['matchmaker_id'])

    # Chat rooms table
    op.create_table(
        'chat_rooms',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.String(10), nullable=False, server_default='normal'),
        sa.Column('profile_id', sa.Uuid(), nullable=True),
        sa.Column('requester_id', sa.Uuid(), nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('profile_revealed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('profile_revealed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reveal_requested_by', sa.Uuid(), nullable=True),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('profile_id', 'requester_id', name='uq_chat_rooms_profile_requester'),
        sa.CheckConstraint(
            'reveal_requested_by IS NULL'
            ' OR reveal_requested_by = requester_id'
            ' OR reveal_requested_by = target_id',
            name='reveal_requester_check',
        ),
    )
    op.create_index('ix_chat_rooms_profile_id', 'chat_rooms', ['profile_id'])
    op.create_index('ix_chat_rooms_requester_id', 'chat_rooms', ['requester_id'])
    op.create_index('ix_chat_rooms_target_id', 'chat_rooms', ['target_id'])
    op.create_index('ix_chat_rooms_created_at', 'chat_rooms', ['created_at'])

    # Messages table
    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('room_id', sa.Uuid(), nullable=False),
        sa.Column('sender_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['room_id'], ['chat_rooms.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_messages_room_id', 'messages', ['room_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])

    # Notifications table
    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(100), nullable=True),
        sa.Column('message', sa.String(300), nullable=True),
        sa.Column('link_url', sa.String(300), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    # Blocks table
    op.create_table(
        'blocks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('blocker_id', sa.Uuid(), nullable=False),
        sa.Column('blocked_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('blocker_id', 'blocked_id', name='uq_blocks_pair'),
        sa.CheckConstraint('blocker_id <> blocked_id', name='no_self_block_check'),
    )
    op.create_index('ix_blocks_blocker_id', 'blocks', ['blocker_id'])
    op.create_index('ix_blocks_blocked_id', 'blocks', ['blocked_id'])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table('blocks')
    op.drop_table('notifications')
    op.drop_table('messages')
    op.drop_table('chat_rooms')
    op.drop_table('profiles')
