"""create voting tables

Revision ID: 1a7e5c9d2b40
Revises:
Create Date: 2026-10-18 10:12:04.511203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a7e5c9d2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'verification_codes',
        sa.Column('phone_number', sa.String(15), primary_key=True),
        sa.Column('code_hash', sa.String(64), nullable=False),
        sa.Column('issued_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_verification_codes_expires_at', 'verification_codes', ['expires_at'])

    op.create_table(
        'members',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('phone_number', sa.String(15), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_members_phone_number', 'members', ['phone_number'], unique=True)

    op.create_table(
        'ballots',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('voter_id', sa.String(32), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('candidate_id', sa.String(64), nullable=False),
        sa.Column('cast_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint('voter_id', name='uq_ballots_voter_id'),
    )
    op.create_index('ix_ballots_candidate_id', 'ballots', ['candidate_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_ballots_candidate_id', table_name='ballots')
    op.drop_table('ballots')
    op.drop_index('ix_members_phone_number', table_name='members')
    op.drop_table('members')
    op.drop_index('ix_verification_codes_expires_at', table_name='verification_codes')
    op.drop_table('verification_codes')
