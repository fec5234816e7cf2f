"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete PodCount schema:
- factories: tenant root
- users, session_tokens, password_reset_requests: identity and sessions
- forms, form_access, form_responses, form_entries: form builder data
- security_events: append-only audit log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable,
                     server_default=sa.text('CURRENT_TIMESTAMP') if not nullable else None)


def upgrade():
    # ============================================================================
    # factories
    # ============================================================================
    op.create_table(
        'factories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id', name='pk_factories'),
        sa.UniqueConstraint('name', name='uq_factories_name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('factory_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        _timestamp('last_login_at', nullable=True),
        sa.ForeignKeyConstraint(['factory_id'], ['factories.id'], name='fk_users_factory_id_factories'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_factory_id', 'users', ['factory_id'])

    # ============================================================================
    # session_tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        _timestamp('revoked_at', nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_session_tokens'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # password_reset_requests
    # ============================================================================
    op.create_table(
        'password_reset_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        _timestamp('created_at'),
        _timestamp('completed_at', nullable=True),
        sa.Column('resolved_by_user_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_password_reset_requests_user_id_users'),
        sa.ForeignKeyConstraint(['resolved_by_user_id'], ['users.id'], name='fk_password_reset_requests_resolved_by_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_password_reset_requests'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_password_reset_requests_user_id', 'password_reset_requests', ['user_id'])
    op.create_index('ix_password_reset_requests_status', 'password_reset_requests', ['status', 'created_at'])

    # ============================================================================
    # forms: (name, factory_id) unique
    # ============================================================================
    op.create_table(
        'forms',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('fields', sa.Text(), nullable=False),
        sa.Column('factory_id', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['factory_id'], ['factories.id'], name='fk_forms_factory_id_factories'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], name='fk_forms_created_by_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_forms'),
        sa.UniqueConstraint('name', 'factory_id', name='uq_forms_name_factory'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_forms_factory_id', 'forms', ['factory_id'])
    op.create_index('ix_forms_created_by_id', 'forms', ['created_by_id'])

    # ============================================================================
    # form_access: one grant row per (user, form)
    # ============================================================================
    op.create_table(
        'form_access',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('form_id', sa.Integer(), nullable=False),
        sa.Column('can_view', sa.Boolean(), nullable=False),
        sa.Column('can_edit', sa.Boolean(), nullable=False),
        sa.Column('can_delete', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_form_access_user_id_users'),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], name='fk_form_access_form_id_forms'),
        sa.PrimaryKeyConstraint('id', name='pk_form_access'),
        sa.UniqueConstraint('user_id', 'form_id', name='uq_form_access_user_form'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_form_access_user_id', 'form_access', ['user_id'])
    op.create_index('ix_form_access_form_id', 'form_access', ['form_id'])

    # ============================================================================
    # form_responses and legacy form_entries
    # ============================================================================
    op.create_table(
        'form_responses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('form_id', sa.Integer(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('submitted_by_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], name='fk_form_responses_form_id_forms'),
        sa.ForeignKeyConstraint(['submitted_by_id'], ['users.id'], name='fk_form_responses_submitted_by_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_form_responses'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_form_responses_form_created', 'form_responses', ['form_id', 'created_at'])
    op.create_index('ix_form_responses_submitted_by_id', 'form_responses', ['submitted_by_id'])

    op.create_table(
        'form_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('form_id', sa.Integer(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('submitted_by_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], name='fk_form_entries_form_id_forms'),
        sa.ForeignKeyConstraint(['submitted_by_id'], ['users.id'], name='fk_form_entries_submitted_by_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_form_entries'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_form_entries_form_id', 'form_entries', ['form_id'])

    # ============================================================================
    # security_events: append-only audit log
    # ============================================================================
    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('factory_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        _timestamp('occurred_at'),
        sa.PrimaryKeyConstraint('id', name='pk_security_events'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_security_events_factory_id', 'security_events', ['factory_id'])
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_success', 'security_events', ['success'])
    op.create_index('ix_security_events_occurred_at', 'security_events', ['occurred_at'])
    op.create_index('ix_security_events_user_type', 'security_events', ['user_id', 'event_type'])
    op.create_index('ix_security_events_occurred', 'security_events', ['occurred_at'])


def downgrade():
    op.drop_table('security_events')
    op.drop_table('form_entries')
    op.drop_table('form_responses')
    op.drop_table('form_access')
    op.drop_table('forms')
    op.drop_table('password_reset_requests')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('factories')
