"""Baseline migration - verification workflow and notification delivery

Revision ID: 0001_verification_baseline
Revises:
Create Date: 2026-10-18

Creates:
- accounts
- verification_requests (one pending request per organization)
- verification_documents
- verification_audit_logs (append-only)
- notifications, notification_preferences
- notification_queue (email deliveries with claim/lease columns)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_verification_baseline'
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    # ==========================================================================
    # accounts
    # ==========================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(128), nullable=False),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('display_name', sa.String(255), server_default='', nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('organization_name', sa.String(255), nullable=True),
        sa.Column('verification_status', sa.String(20), nullable=True),
        sa.Column('verification_request_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_accounts_role', 'accounts', ['role'])

    # ==========================================================================
    # verification_requests
    # ==========================================================================
    op.create_table(
        'verification_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.String(128), nullable=False),

        # Organization profile
        sa.Column('organization_name', sa.String(255), nullable=False),
        sa.Column('organization_type', sa.String(100), nullable=False),
        sa.Column('contact_email', sa.String(320), nullable=False),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('website', sa.String(500), nullable=True),

        # Postal address
        sa.Column('street', sa.String(255), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('zip_code', sa.String(20), nullable=False),
        sa.Column('country', sa.String(100), nullable=False),

        sa.Column('mission_statement', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),

        # Review tracking
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.String(128), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_verification_requests_org_submitted',
        'verification_requests',
        ['organization_id', 'submitted_at'],
    )
    op.create_index(
        'idx_verification_requests_status',
        'verification_requests',
        ['status', 'submitted_at'],
    )
    op.create_index(
        'uq_verification_requests_active_org',
        'verification_requests',
        ['organization_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    # ==========================================================================
    # verification_documents
    # ==========================================================================
    op.create_table(
        'verification_documents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('request_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ['request_id'], ['verification_requests.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_verification_documents_request',
        'verification_documents',
        ['request_id', 'position'],
    )

    # ==========================================================================
    # verification_audit_logs (no FK: entries outlive the request row)
    # ==========================================================================
    op.create_table(
        'verification_audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('request_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('performed_by', sa.String(128), nullable=False),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('details', _json(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_verification_audit_request',
        'verification_audit_logs',
        ['request_id', 'performed_at'],
    )
    op.create_index(
        'idx_verification_audit_performed',
        'verification_audit_logs',
        ['performed_at'],
    )

    # ==========================================================================
    # notifications
    # ==========================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('verification_request_id', sa.Uuid(), nullable=True),
        sa.Column('metadata', _json(), nullable=True),
        sa.Column('read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_notif_user_unread', 'notifications', ['user_id', 'read', 'created_at']
    )
    op.create_index('idx_notif_user_created', 'notifications', ['user_id', 'created_at'])

    op.create_table(
        'notification_preferences',
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('email_notifications', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('in_app_notifications', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('verification_updates', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('system_announcements', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
    )

    # ==========================================================================
    # notification_queue
    # ==========================================================================
    op.create_table(
        'notification_queue',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),

        # Rendered content
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('email_subject', sa.String(500), nullable=True),
        sa.Column('email_html', sa.Text(), nullable=True),
        sa.Column('email_text', sa.Text(), nullable=True),

        # Retry state
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_retries', sa.Integer(), server_default='3', nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('metadata', _json(), nullable=True),

        # Lease
        sa.Column('claimed_by', sa.String(100), nullable=True),
        sa.Column('lease_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_notification_queue_due', 'notification_queue', ['status', 'scheduled_at']
    )
    op.create_index(
        'idx_notification_queue_user', 'notification_queue', ['user_id', 'scheduled_at']
    )


def downgrade() -> None:
    """Drop all verification tables (reverse dependency order)."""
    op.drop_index('idx_notification_queue_user', table_name='notification_queue')
    op.drop_index('idx_notification_queue_due', table_name='notification_queue')
    op.drop_table('notification_queue')

    op.drop_table('notification_preferences')

    op.drop_index('idx_notif_user_created', table_name='notifications')
    op.drop_index('idx_notif_user_unread', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('idx_verification_audit_performed', table_name='verification_audit_logs')
    op.drop_index('idx_verification_audit_request', table_name='verification_audit_logs')
    op.drop_table('verification_audit_logs')

    op.drop_index('idx_verification_documents_request', table_name='verification_documents')
    op.drop_table('verification_documents')

    op.drop_index('uq_verification_requests_active_org', table_name='verification_requests')
    op.drop_index('idx_verification_requests_status', table_name='verification_requests')
    op.drop_index('idx_verification_requests_org_submitted', table_name='verification_requests')
    op.drop_table('verification_requests')

    op.drop_index('idx_accounts_role', table_name='accounts')
    op.drop_table('accounts')
