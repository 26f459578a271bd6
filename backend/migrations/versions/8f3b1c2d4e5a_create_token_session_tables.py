"""create token session tables

Revision ID: 8f3b1c2d4e5a
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '8f3b1c2d4e5a'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'token_families',
        sa.Column('family_id', sa.String(length=64), nullable=False),
        sa.Column('principal_id', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('generation', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.CheckConstraint("status IN ('active', 'revoked')", name=op.f('ck_token_families_status_valid')),
        sa.CheckConstraint('generation >= 0', name=op.f('ck_token_families_generation_non_negative')),
        sa.PrimaryKeyConstraint('family_id', name=op.f('pk_token_families')),
    )
    with op.batch_alter_table('token_families', schema=None) as batch_op:
        batch_op.create_index('ix_token_families_principal_id', ['principal_id'], unique=False)

    op.create_table(
        'refresh_tokens',
        sa.Column('token_id', sa.String(length=128), nullable=False),
        sa.Column('family_id', sa.String(length=64), nullable=False),
        sa.Column('generation', sa.Integer(), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed', sa.Boolean(), nullable=False),
        sa.Column('replaced_by', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(
            ['family_id'],
            ['token_families.family_id'],
            name=op.f('fk_refresh_tokens_family_id_token_families'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('token_id', name=op.f('pk_refresh_tokens')),
        sa.UniqueConstraint('family_id', 'generation', name='uq_refresh_tokens_family_generation'),
    )
    with op.batch_alter_table('refresh_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_refresh_tokens_expires_at', ['expires_at'], unique=False)
        batch_op.create_index('ix_refresh_tokens_family_id', ['family_id'], unique=False)


def downgrade():
    with op.batch_alter_table('refresh_tokens', schema=None) as batch_op:
        batch_op.drop_index('ix_refresh_tokens_family_id')
        batch_op.drop_index('ix_refresh_tokens_expires_at')

    op.drop_table('refresh_tokens')
    with op.batch_alter_table('token_families', schema=None) as batch_op:
        batch_op.drop_index('ix_token_families_principal_id')

    op.drop_table('token_families')
