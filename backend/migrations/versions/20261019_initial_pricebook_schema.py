"""initial pricebook schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete pricebook schema from scratch:
- product: Product master keyed by code, soft delete, optimistic version
- pricehist: Append-only price history (cents, effective date)
- product_audit_log: Product lifecycle audit trail
- users / session_tokens: Accounts and hashed bearer sessions
- security_events: Failed logins, denied access, bans
- app_settings: Key-value application settings
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # product: Product master
    # ============================================================================
    op.create_table(
        'product',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('code'),
    )
    op.create_index('ix_product_deleted_code', 'product', ['is_deleted', 'code'])

    # ============================================================================
    # pricehist: Append-only price history
    # ============================================================================
    op.create_table(
        'pricehist',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prodcode', sa.String(length=64), nullable=False),
        sa.Column('effdate', sa.Date(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('unit_price_cents >= 0', name='ck_pricehist_price_nonneg'),
        sa.ForeignKeyConstraint(['prodcode'], ['product.code'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_pricehist_prodcode', 'pricehist', ['prodcode'])
    op.create_index('ix_pricehist_prodcode_effdate', 'pricehist', ['prodcode', 'effdate'])

    # ============================================================================
    # product_audit_log: no FK on prodcode, rows outlive a purge
    # ============================================================================
    op.create_table(
        'product_audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prodcode', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('performed_by', sa.String(length=255), nullable=False),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint(
            "action IN ('created', 'edited', 'deleted', 'recovered')",
            name='ck_product_audit_log_action',
        ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_product_audit_log_performed', 'product_audit_log', ['performed_at'])
    op.create_index('ix_product_audit_log_prodcode_performed', 'product_audit_log', ['prodcode', 'performed_at'])

    # ============================================================================
    # users: One role per account, ban expiry drives status
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('banned_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('user', 'admin')", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ============================================================================
    # session_tokens: SHA-256 hashed bearer tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # security_events: Append-only security log
    # ============================================================================
    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_success', 'security_events', ['success'])
    op.create_index('ix_security_events_occurred_at', 'security_events', ['occurred_at'])
    op.create_index('ix_security_events_user_type', 'security_events', ['user_id', 'event_type'])
    op.create_index('ix_security_events_occurred', 'security_events', ['occurred_at'])

    # ============================================================================
    # app_settings: JSON values keyed by setting name
    # ============================================================================
    op.create_table(
        'app_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_app_settings_key'),
        sqlite_autoincrement=True
    )


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('app_settings')
    op.drop_table('security_events')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('product_audit_log')
    op.drop_table('pricehist')
    op.drop_table('product')
