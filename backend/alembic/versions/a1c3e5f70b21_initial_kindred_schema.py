"""initial_kindred_schema

Revision ID: a1c3e5f70b21
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'a1c3e5f70b21'
down_revision = None
branch_labels = None
depends_on = None

user_role = postgresql.ENUM('BRAND', 'SUPPLIER', 'ADMIN', 'MEMBER', name='user_role', create_type=False)
claim_status = postgresql.ENUM('UNCLAIMED', 'PENDING', 'CLAIMED', name='claim_status', create_type=False)
organisation_type = postgresql.ENUM('BRAND', 'SUPPLIER', name='organisation_type', create_type=False)
organisation_role = postgresql.ENUM('OWNER', 'ADMIN', 'MEMBER', name='organisation_role', create_type=False)
supplier_claim_status = postgresql.ENUM('PENDING', 'CLAIMED', 'REJECTED', name='supplier_claim_status',
                                        create_type=False)

ENUMS = (user_role, claim_status, organisation_type, organisation_role, supplier_claim_status)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'auth_identities',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('confirmation_code', sa.String(length=255), nullable=True),
        sa.Column('email_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_auth_identities_email', 'auth_identities', ['email'], unique=True)
    op.create_index('ix_auth_identities_confirmation_code', 'auth_identities', ['confirmation_code'], unique=True)

    # users.invite_link_token -> invite_links.token is added once both tables exist
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('invite_link_token', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_verified_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_invite_link_token', 'users', ['invite_link_token'], unique=False)

    op.create_table(
        'invite_links',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('target_role', user_role, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_invite_links_created_by'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invite_links_token', 'invite_links', ['token'], unique=True)
    op.create_foreign_key('fk_users_invite_link_token', 'users', 'invite_links', ['invite_link_token'], ['token'])

    op.create_table(
        'members',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('job_title', sa.String(length=255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('linkedin_url', sa.String(length=500), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_members_user_id'),
    )

    op.create_table(
        'brands',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_brands_slug', 'brands', ['slug'], unique=True)
    op.create_index('ix_brands_user_id', 'brands', ['user_id'], unique=False)

    op.create_table(
        'suppliers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('claim_status', claim_status, nullable=False, server_default='UNCLAIMED'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_suppliers_slug', 'suppliers', ['slug'], unique=True)
    op.create_index('ix_suppliers_user_id', 'suppliers', ['user_id'], unique=False)

    op.create_table(
        'organisations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('type', organisation_type, nullable=False),
        sa.Column('brand_id', sa.String(length=36), nullable=True),
        sa.Column('supplier_id', sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('brand_id', name='uq_organisations_brand_id'),
        sa.UniqueConstraint('supplier_id', name='uq_organisations_supplier_id'),
        sa.CheckConstraint(
            "(type = 'BRAND' AND brand_id IS NOT NULL AND supplier_id IS NULL)"
            " OR (type = 'SUPPLIER' AND supplier_id IS NOT NULL AND brand_id IS NULL)",
            name='ck_organisations_single_profile',
        ),
    )
    op.create_index('ix_organisations_slug', 'organisations', ['slug'], unique=True)

    op.create_table(
        'organisation_members',
        sa.Column('organisation_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('role', organisation_role, nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['organisation_id'], ['organisations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('organisation_id', 'user_id'),
        sa.UniqueConstraint('user_id', name='uq_organisation_members_user'),
    )

    op.create_table(
        'organisation_invites',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('organisation_id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('role', organisation_role, nullable=False),
        sa.Column('created_by_id', sa.String(length=36), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['organisation_id'], ['organisations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_organisation_invites_token', 'organisation_invites', ['token'], unique=True)
    op.create_index('ix_organisation_invites_email', 'organisation_invites', ['email'], unique=False)
    op.create_index('ix_organisation_invites_organisation_id', 'organisation_invites', ['organisation_id'],
                    unique=False)

    op.create_table(
        'supplier_claims',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('supplier_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('status', supplier_claim_status, nullable=False, server_default='PENDING'),
        sa.Column('verification_code', sa.String(length=10), nullable=False),
        sa.Column('company_email', sa.String(length=255), nullable=False),
        sa.Column('failed_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by', sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['processed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_supplier_claims_supplier_id', 'supplier_claims', ['supplier_id'], unique=False)
    op.create_index('ix_supplier_claims_user_id', 'supplier_claims', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_table('supplier_claims')
    op.drop_table('organisation_invites')
    op.drop_table('organisation_members')
    op.drop_table('organisations')
    op.drop_table('suppliers')
    op.drop_table('brands')
    op.drop_table('members')
    op.drop_constraint('fk_users_invite_link_token', 'users', type_='foreignkey')
    op.drop_table('invite_links')
    op.drop_table('users')
    op.drop_table('auth_identities')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
