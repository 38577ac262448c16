"""initial_auth_sessions

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the auth_sessions table.

    The application also calls create_all on startup, so the table may
    already exist.
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'auth_sessions' not in existing_tables:
        op.create_table(
            'auth_sessions',
            sa.Column('session_id', sa.String(length=64), nullable=False),
            sa.Column('access_token', sa.Text(), nullable=False),
            sa.Column('user_json', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('session_id')
        )
        op.create_index(
            'ix_auth_sessions_expires_at',
            'auth_sessions',
            ['expires_at']
        )


def downgrade() -> None:
    op.drop_index('ix_auth_sessions_expires_at', table_name='auth_sessions')
    op.drop_table('auth_sessions')
