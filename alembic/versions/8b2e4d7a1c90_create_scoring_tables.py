"""Create scoring runs, profiles and flashlight scores

Revision ID: 8b2e4d7a1c90
Revises: 3f1a9c0d2b11
Create Date: 2026-10-18 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b2e4d7a1c90'
down_revision: Union[str, None] = '3f1a9c0d2b11'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'scoring_runs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('run_label', sa.Text(), nullable=False),
        sa.Column('formula_version', sa.Text(), nullable=False, server_default='v1'),
        sa.Column('status', sa.Text(), nullable=False, server_default='running'),
        sa.Column('initiated_by', sa.Text(), nullable=False, server_default='scorejob'),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint("status IN ('running', 'completed', 'failed')", name='ck_scoring_runs_status'),
    )
    op.create_index('ix_scoring_runs_status', 'scoring_runs', ['status'])

    op.create_table(
        'scoring_profiles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('display_name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), server_default=''),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('slug', name='uq_scoring_profiles_slug'),
    )

    op.create_table(
        'flashlight_scores',
        sa.Column('run_id', sa.Integer(), sa.ForeignKey('scoring_runs.id'), primary_key=True),
        sa.Column('flashlight_id', sa.Integer(), sa.ForeignKey('flashlights.id'), primary_key=True),
        sa.Column('profile_id', sa.Integer(), sa.ForeignKey('scoring_profiles.id'), primary_key=True),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('rank_position', sa.Integer(), nullable=True),
        sa.Column('metric_breakdown', sa.JSON(), nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('score >= 0 AND score <= 100', name='ck_flashlight_scores_range'),
    )
    op.create_index('ix_flashlight_scores_run_profile', 'flashlight_scores', ['run_id', 'profile_id'])


def downgrade() -> None:
    op.drop_index('ix_flashlight_scores_run_profile', 'flashlight_scores')
    op.drop_table('flashlight_scores')
    op.drop_table('scoring_profiles')
    op.drop_index('ix_scoring_runs_status', 'scoring_runs')
    op.drop_table('scoring_runs')
