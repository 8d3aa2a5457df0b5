"""Create catalog tables read by the scoring batch

Revision ID: 3f1a9c0d2b11
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c0d2b11'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'flashlights',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('model_code', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('slug', name='uq_flashlights_slug'),
    )

    op.create_table(
        'flashlight_specs',
        sa.Column('flashlight_id', sa.Integer(), sa.ForeignKey('flashlights.id'), primary_key=True),
        sa.Column('max_lumens', sa.Float(), nullable=True),
        sa.Column('max_candela', sa.Float(), nullable=True),
        sa.Column('beam_distance_m', sa.Float(), nullable=True),
        sa.Column('runtime_medium_min', sa.Float(), nullable=True),
        sa.Column('runtime_high_min', sa.Float(), nullable=True),
        sa.Column('waterproof_rating', sa.Text(), nullable=True),
        sa.Column('impact_resistance_m', sa.Float(), nullable=True),
    )

    op.create_table(
        'flashlight_price_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('flashlight_id', sa.Integer(), sa.ForeignKey('flashlights.id'), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('currency_code', sa.Text(), nullable=False, server_default='USD'),
        sa.Column('captured_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_flashlight_price_snapshots_flashlight_id',
                    'flashlight_price_snapshots', ['flashlight_id'])


def downgrade() -> None:
    op.drop_index('ix_flashlight_price_snapshots_flashlight_id', 'flashlight_price_snapshots')
    op.drop_table('flashlight_price_snapshots')
    op.drop_table('flashlight_specs')
    op.drop_table('flashlights')
