"""Add invitations table and one support room per user

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 13:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'invitations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('invite_code', sa.String(16), nullable=False),
        sa.Column('matchmaker_id', sa.Uuid(), nullable=False),
        sa.Column('matchmaker_message', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('target_id', sa.Uuid(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invitations_invite_code', 'invitations', ['invite_code'], unique=True)
    op.create_index('ix_invitations_matchmaker_id', 'invitations', ['matchmaker_id'])
    op.create_index('ix_invitations_created_at', 'invitations', ['created_at'])

    with op.batch_alter_table('profiles') as batch_op:
        batch_op.create_foreign_key(
            'fk_profiles_invitation_id', 'invitations', ['invitation_id'], ['id']
        )

    # profile_id is NULL for support rooms, so uq_chat_rooms_profile_requester never applies
    op.create_index(
        'uq_chat_rooms_support_requester',
        'chat_rooms',
        ['requester_id'],
        unique=True,
        postgresql_where=sa.text("kind = 'support'"),
        sqlite_where=sa.text("kind = 'support'"),
    )


def downgrade() -> None:
    op.drop_index('uq_chat_rooms_support_requester', table_name='chat_rooms')
    with op.batch_alter_table('profiles') as batch_op:
        batch_op.drop_constraint('fk_profiles_invitation_id', type_='foreignkey')
    op.drop_index('ix_invitations_created_at', table_name='invitations')
    op.drop_index('ix_invitations_matchmaker_id', table_name='invitations')
    op.drop_index('ix_invitations_invite_code', table_name='invitations')
    op.drop_table('invitations')
