"""Add full_name to profiles

Revision ID: 8b42e0c5d3a7
Revises: 3f1c2a9d7b10
Create Date: 2026-10-19 14:03:17.220981

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8b42e0c5d3a7'
down_revision = '3f1c2a9d7b10'
branch_labels = None
depends_on = None


def upgrade():
    op.add_column('profiles', sa.Column('full_name', sa.String(128), nullable=True))


def downgrade():
    op.drop_column('profiles', 'full_name')
