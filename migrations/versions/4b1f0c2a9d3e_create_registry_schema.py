"""create registry schema

Revision ID: 4b1f0c2a9d3e
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4b1f0c2a9d3e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Step 1: Participants (the credential store)
    op.create_table(
        'participants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(40), nullable=False, unique=True),
        sa.Column('code_hash', sa.String(255), nullable=False),
        sa.Column('category', sa.String(10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.CheckConstraint("category IN ('girl', 'guy')", name='ck_participants_category'),
    )

    # Step 2: Asks
    op.create_table(
        'asks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('from_id', sa.Uuid(), sa.ForeignKey('participants.id'), nullable=False),
        sa.Column('to_id', sa.Uuid(), sa.ForeignKey('participants.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('message', sa.String(280)),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('resolved_at', sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'canceled', 'superseded')",
            name='ck_asks_status',
        ),
        sa.CheckConstraint('from_id <> to_id', name='ck_asks_distinct_endpoints'),
    )
    op.create_index('idx_asks_from_id', 'asks', ['from_id'])
    op.create_index('idx_asks_to_id', 'asks', ['to_id'])

    # Step 3: Pairings; UNIQUE columns cap everyone at one partner
    op.create_table(
        'pairings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('girl_id', sa.Uuid(), sa.ForeignKey('participants.id'), nullable=False, unique=True),
        sa.Column('guy_id', sa.Uuid(), sa.ForeignKey('participants.id'), nullable=False, unique=True),
        sa.Column('proposal_id', sa.Uuid(), sa.ForeignKey('asks.id'), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
    )

    # Step 4: Browser sessions
    op.create_table(
        'browser_sessions',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column(
            'participant_id',
            sa.Uuid(),
            sa.ForeignKey('participants.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('access_granted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('csrf_token', sa.String(64)),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('last_seen_at', sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('browser_sessions')
    op.drop_table('pairings')
    op.drop_index('idx_asks_to_id', table_name='asks')
    op.drop_index('idx_asks_from_id', table_name='asks')
    op.drop_table('asks')
    op.drop_table('participants')
