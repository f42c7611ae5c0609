"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2025-08-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    'requestchannel': ['EMAIL', 'SMS'],
    'requeststatus': ['QUEUED', 'SENT', 'DELIVERED', 'CLICKED', 'COMPLETED', 'FAILED', 'BOUNCED', 'OPTED_OUT'],
    'suppressionreason': ['USER_REQUEST', 'BOUNCE', 'SPAM', 'UNSUBSCRIBE', 'MANUAL'],
    'suppressionsource': ['MANUAL', 'WEBHOOK', 'SYSTEM'],
    'eventtype': [
        'REQUEST_CREATED', 'REQUEST_SENT', 'REQUEST_FAILED', 'REQUEST_DELIVERED', 'REQUEST_CLICKED',
        'REQUEST_BOUNCED', 'REQUEST_OPTED_OUT', 'EMAIL_PROCESSED', 'EMAIL_OPENED', 'SUPPRESSION_ADDED',
    ],
}


def create_enum_if_not_exists(enum_name, enum_values):
    """Create PostgreSQL ENUM type if it doesn't exist"""
    enum_name_escaped = enum_name.replace('"', '""')
    values_str = ", ".join(["'" + v.replace("'", "''") + "'" for v in enum_values])
    op.execute(f"""
        DO $$ BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = '{enum_name_escaped}') THEN
                CREATE TYPE "{enum_name_escaped}" AS ENUM ({values_str});
            END IF;
        END $$;
    """)


def enum_column_type(enum_name):
    return postgresql.ENUM(*ENUMS[enum_name], name=enum_name, create_type=False)


def upgrade() -> None:
    for enum_name, enum_values in ENUMS.items():
        create_enum_if_not_exists(enum_name, enum_values)

    # Businesses
    op.create_table(
        'businesses',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('website', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('google_place_id', sa.String(), nullable=True, index=True),
        sa.Column('google_review_url', sa.String(), nullable=True),
        sa.Column('settings', postgresql.JSONB(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sms_credits_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sms_credits_limit', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('email_credits_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('email_credits_limit', sa.Integer(), nullable=False, server_default='500'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # Users
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('clerk_user_id', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('email', sa.String(), nullable=False, index=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=True, index=True),
        sa.Column('notification_preferences', postgresql.JSONB(), nullable=True),
        sa.Column('ui_preferences', postgresql.JSONB(), nullable=True),
        sa.Column('last_active_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # Customers
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True, index=True),
        sa.Column('phone', sa.String(), nullable=True, index=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    # Review Requests
    op.create_table(
        'review_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id'), nullable=False, index=True),
        sa.Column('channel', enum_column_type('requestchannel'), nullable=False),
        sa.Column('status', enum_column_type('requeststatus'), nullable=False, index=True),
        sa.Column('subject', sa.String(), nullable=True),
        sa.Column('message_content', sa.Text(), nullable=False),
        sa.Column('review_url', sa.String(), nullable=False),
        sa.Column('tracking_uuid', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('tracking_url', sa.String(), nullable=False),
        sa.Column('external_id', sa.String(), nullable=True, index=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('clicked_at', sa.DateTime(), nullable=True),
        sa.Column('click_metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('delivered_at IS NULL OR sent_at IS NOT NULL', name='ck_review_requests_delivered_after_sent'),
        sa.CheckConstraint('clicked_at IS NULL OR sent_at IS NOT NULL', name='ck_review_requests_clicked_after_sent'),
    )

    # Suppressions
    op.create_table(
        'suppressions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('contact', sa.String(), nullable=False, index=True),
        sa.Column('channel', enum_column_type('requestchannel'), nullable=True),
        sa.Column('reason', enum_column_type('suppressionreason'), nullable=False),
        sa.Column('source', enum_column_type('suppressionsource'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
    )

    # Events
    op.create_table(
        'events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('businesses.id'), nullable=False, index=True),
        sa.Column('review_request_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('review_requests.id'), nullable=True, index=True),
        sa.Column('type', enum_column_type('eventtype'), nullable=False, index=True),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table('events')
    op.drop_table('suppressions')
    op.drop_table('review_requests')
    op.drop_table('customers')
    op.drop_table('users')
    op.drop_table('businesses')
    for enum_name in reversed(list(ENUMS)):
        op.execute(f'DROP TYPE IF EXISTS "{enum_name}"')
