"""Create contribution lifecycle and points ledger tables

Revision ID: 3f1c2a9d7b10
Revises: 
Create Date: 2026-10-19 09:12:41.518204

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7b10'
down_revision = None
branch_labels = None
depends_on = None

UUID = sa.Uuid(as_uuid=True)
TIMESTAMP = sa.DateTime(timezone=True)
JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    """
    Applies the migration to the database.
    """
    op.create_table(
        'profiles',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('firebase_uid', sa.String(128), nullable=False, unique=True),
        sa.Column('email', sa.String(256), nullable=True),
        sa.Column('username', sa.String(64), nullable=True),
        sa.Column('role', sa.Enum('member', 'admin', name='profile_role'), nullable=False),
        sa.Column('point_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
        sa.CheckConstraint('point_balance >= 0', name='ck_profiles_point_balance_non_negative'),
    )

    op.create_table(
        'proposals',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('creator_id', UUID, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.Enum('project', 'bounty', name='proposal_type'), nullable=False),
        sa.Column(
            'status',
            sa.Enum('draft', 'submitted', 'under_review', 'approved', 'rejected', 'completed', name='proposal_status'),
            nullable=False,
        ),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('short_description', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False),
        sa.Column('deadline', TIMESTAMP, nullable=True),
        sa.Column('fields', JSON, nullable=False),
        sa.Column('skills_required', JSON, nullable=False),
        sa.Column('review_feedback', sa.Text(), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
        sa.CheckConstraint('total_points > 0', name='ck_proposals_total_points_positive'),
    )
    op.create_index('ix_proposals_creator_id', 'proposals', ['creator_id'])

    op.create_table(
        'milestones',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('proposal_id', UUID, sa.ForeignKey('proposals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('deliverables', JSON, nullable=False),
        sa.Column('points_allocated', sa.Integer(), nullable=False),
        sa.Column('deadline', TIMESTAMP, nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', TIMESTAMP, nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
        sa.CheckConstraint('points_allocated > 0', name='ck_milestones_points_positive'),
    )
    op.create_index('ix_milestones_proposal_id', 'milestones', ['proposal_id'])

    op.create_table(
        'bounty_submissions',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('bounty_id', UUID, sa.ForeignKey('proposals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('submitter_id', UUID, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('submission_url', sa.String(2048), nullable=True),
        sa.Column('submission_text', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('pending', 'approved', 'rejected', name='submission_status'), nullable=False),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
        sa.UniqueConstraint('bounty_id', 'submitter_id', name='uq_bounty_submissions_bounty_submitter'),
        sa.CheckConstraint('points_awarded >= 0', name='ck_bounty_submissions_points_non_negative'),
    )
    op.create_index('ix_bounty_submissions_bounty_id', 'bounty_submissions', ['bounty_id'])
    op.create_index('ix_bounty_submissions_submitter_id', 'bounty_submissions', ['submitter_id'])

    op.create_table(
        'projects',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('proposal_id', UUID, sa.ForeignKey('proposals.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('leader_id', UUID, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', TIMESTAMP, nullable=False),
        sa.Column('end_date', TIMESTAMP, nullable=False),
        sa.Column('repository', sa.String(2048), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )

    op.create_table(
        'project_members',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('project_id', UUID, sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', UUID, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.Enum('leader', 'contributor', name='project_role'), nullable=False),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_project_members_project_user'),
    )

    op.create_table(
        'point_credits',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('source_type', sa.Enum('bounty_submission', 'milestone', name='credit_source'), nullable=False),
        sa.Column('source_id', UUID, nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPLIED', name='credit_status'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=True),
        sa.Column('last_error', sa.String(500), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('applied_at', TIMESTAMP, nullable=True),
        sa.UniqueConstraint('source_type', 'source_id', name='uq_point_credits_source'),
        sa.CheckConstraint('amount > 0', name='ck_point_credits_amount_positive'),
    )
    op.create_index('ix_point_credits_user_id', 'point_credits', ['user_id'])
    op.create_index('ix_point_credits_status', 'point_credits', ['status'])

    op.create_table(
        'status_changes',
        sa.Column('id', UUID, primary_key=True),
        sa.Column(
            'entity_type',
            sa.Enum('proposal', 'bounty_submission', 'milestone', name='status_entity_type'),
            nullable=False,
        ),
        sa.Column('entity_id', UUID, nullable=False),
        sa.Column('changed_by', UUID, sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('old_status', sa.String(50), nullable=False),
        sa.Column('new_status', sa.String(50), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('ix_status_changes_entity_id', 'status_changes', ['entity_id'])


def downgrade():
    """
    Reverts the migration from the database.
    """
    op.drop_index('ix_status_changes_entity_id', table_name='status_changes')
    op.drop_table('status_changes')
    op.drop_index('ix_point_credits_status', table_name='point_credits')
    op.drop_index('ix_point_credits_user_id', table_name='point_credits')
    op.drop_table('point_credits')
    op.drop_table('project_members')
    op.drop_table('projects')
    op.drop_index('ix_bounty_submissions_submitter_id', table_name='bounty_submissions')
    op.drop_index('ix_bounty_submissions_bounty_id', table_name='bounty_submissions')
    op.drop_table('bounty_submissions')
    op.drop_index('ix_milestones_proposal_id', table_name='milestones')
    op.drop_table('milestones')
    op.drop_index('ix_proposals_creator_id', table_name='proposals')
    op.drop_table('proposals')
    op.drop_table('profiles')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in (
            'status_entity_type', 'credit_source', 'credit_status', 'project_role',
            'submission_status', 'proposal_status', 'proposal_type', 'profile_role',
        ):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
