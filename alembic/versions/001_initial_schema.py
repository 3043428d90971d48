"""Initial schema: users, trips, activities, status history, collaboration, comments, votes, notifications, price alerts, affiliate tracking, shared trips

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables with indexes and constraints."""

    # JSONB on PostgreSQL, JSON text on SQLite
    bind = op.get_bind()
    is_postgresql = bind.dialect.name == 'postgresql'
    json_type = postgresql.JSONB() if is_postgresql else sa.JSON()
    uuid_type = sa.Uuid()

    # Create user table
    op.create_table(
        'user',
        sa.Column('user_id', uuid_type, primary_key=True),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='USER'),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('travel_preferences', json_type, nullable=False),
        sa.Column('preferences', json_type, nullable=False),
        sa.Column('onboarding_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('onboarding_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('locked_until', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('email', name='uq_user_email'),
    )
    op.create_index('idx_user_email', 'user', ['email'])

    # Create trip table
    op.create_table(
        'trip',
        sa.Column('trip_id', uuid_type, primary_key=True),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('destination', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('budget', sa.Float(), nullable=True),
        sa.Column('travelers', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(16), nullable=False, server_default='DRAFT'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('itinerary', json_type, nullable=True),
        sa.Column('preferences', json_type, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_trip_user', 'trip', ['user_id'])
    op.create_index('idx_trip_status', 'trip', ['status'])
    op.create_index('idx_trip_dates', 'trip', ['start_date', 'end_date'])

    # Create activity table
    op.create_table(
        'activity',
        sa.Column('activity_id', uuid_type, primary_key=True),
        sa.Column('trip_id', uuid_type, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('activity_type', sa.String(32), nullable=False, server_default='OTHER'),
        sa.Column('day_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_activity_trip_day', 'activity', ['trip_id', 'day_number'])

    # Create status_history table
    op.create_table(
        'status_history',
        sa.Column('history_id', uuid_type, primary_key=True),
        sa.Column('trip_id', uuid_type, nullable=False),
        sa.Column('old_status', sa.String(16), nullable=False),
        sa.Column('new_status', sa.String(16), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('user_id', uuid_type, nullable=True),
        sa.Column('details', json_type, nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='SET NULL'),
    )
    op.create_index('idx_status_history_trip', 'status_history', ['trip_id', 'timestamp'])

    # Create collaboration table
    op.create_table(
        'collaboration',
        sa.Column('collaboration_id', uuid_type, primary_key=True),
        sa.Column('trip_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='VIEWER'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('trip_id', 'user_id', name='uq_collaboration_trip_user'),
    )
    op.create_index('idx_collaboration_user', 'collaboration', ['user_id'])

    # Create invitation table
    op.create_table(
        'invitation',
        sa.Column('invitation_id', uuid_type, primary_key=True),
        sa.Column('trip_id', uuid_type, nullable=False),
        sa.Column('inviter_id', uuid_type, nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['inviter_id'], ['user.user_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('token', name='uq_invitation_token'),
    )
    op.create_index('idx_invitation_trip_email', 'invitation', ['trip_id', 'email'])

    # Create comment table
    op.create_table(
        'comment',
        sa.Column('comment_id', uuid_type, primary_key=True),
        sa.Column('trip_id', uuid_type, nullable=False),
        sa.Column('activity_id', uuid_type, nullable=True),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('parent_id', uuid_type, nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['activity_id'], ['activity.activity_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['comment.comment_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_comment_trip', 'comment', ['trip_id', 'created_at'])
    op.create_index('idx_comment_parent', 'comment', ['parent_id'])

    # Create vote table
    op.create_table(
        'vote',
        sa.Column('vote_id', uuid_type, primary_key=True),
        sa.Column('activity_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['activity_id'], ['activity.activity_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('activity_id', 'user_id', name='uq_vote_activity_user'),
        sa.CheckConstraint('value IN (-1, 0, 1)', name='ck_vote_value'),
    )

    # Create notification table
    op.create_table(
        'notification',
        sa.Column('notification_id', uuid_type, primary_key=True),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('trip_id', uuid_type, nullable=True),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', json_type, nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_notification_user_read', 'notification', ['user_id', 'is_read'])

    # Create price_alert table
    op.create_table(
        'price_alert',
        sa.Column('alert_id', uuid_type, primary_key=True),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('search_params', json_type, nullable=False),
        sa.Column('target_price', sa.Float(), nullable=False),
        sa.Column('current_price', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_checked', sa.DateTime(timezone=True), nullable=True),
        sa.Column('alerts_sent', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_price_alert_active', 'price_alert', ['is_active', 'last_checked'])

    # Create affiliate_partner table
    op.create_table(
        'affiliate_partner',
        sa.Column('partner_id', sa.String(64), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('base_url', sa.Text(), nullable=False),
        sa.Column('commission_rate', sa.Float(), nullable=False),
        sa.Column('tracking_params', json_type, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Create affiliate_link table
    op.create_table(
        'affiliate_link',
        sa.Column('click_id', sa.String(64), primary_key=True),
        sa.Column('partner_id', sa.String(64), nullable=False),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('product_id', sa.Text(), nullable=True),
        sa.Column('original_url', sa.Text(), nullable=False),
        sa.Column('tracking_url', sa.Text(), nullable=False),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(8), nullable=False, server_default='USD'),
        sa.Column('search_params', json_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=True),
        sa.Column('converted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['partner_id'], ['affiliate_partner.partner_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='SET NULL'),
    )
    op.create_index('idx_affiliate_link_partner', 'affiliate_link', ['partner_id', 'created_at'])

    # Create affiliate_click table
    op.create_table(
        'affiliate_click',
        sa.Column('id', uuid_type, primary_key=True),
        sa.Column('click_id', sa.String(64), nullable=False),
        sa.Column('user_id', uuid_type, nullable=True),
        sa.Column('ip_address', sa.Text(), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('referer', sa.Text(), nullable=True),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['click_id'], ['affiliate_link.click_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_affiliate_click_time', 'affiliate_click', ['clicked_at'])

    # Create commission table
    op.create_table(
        'commission',
        sa.Column('commission_id', uuid_type, primary_key=True),
        sa.Column('click_id', sa.String(64), nullable=False),
        sa.Column('partner_id', sa.String(64), nullable=False),
        sa.Column('booking_value', sa.Float(), nullable=False),
        sa.Column('commission_amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False, server_default='USD'),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('booking_reference', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['click_id'], ['affiliate_link.click_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['partner_id'], ['affiliate_partner.partner_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_commission_status', 'commission', ['status'])
    op.create_index('idx_commission_partner_created', 'commission', ['partner_id', 'created_at'])

    # Create shared_trip table
    op.create_table(
        'shared_trip',
        sa.Column('share_id', uuid_type, primary_key=True),
        sa.Column('trip_id', uuid_type, nullable=False),
        sa.Column('share_token', sa.String(64), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('allow_comments', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('show_contact_info', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('show_budget', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['trip_id'], ['trip.trip_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('trip_id', name='uq_shared_trip_trip'),
        sa.UniqueConstraint('share_token', name='uq_shared_trip_token'),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('shared_trip')
    op.drop_index('idx_commission_partner_created', table_name='commission')
    op.drop_index('idx_commission_status', table_name='commission')
    op.drop_table('commission')
    op.drop_index('idx_affiliate_click_time', table_name='affiliate_click')
    op.drop_table('affiliate_click')
    op.drop_index('idx_affiliate_link_partner', table_name='affiliate_link')
    op.drop_table('affiliate_link')
    op.drop_table('affiliate_partner')
    op.drop_index('idx_price_alert_active', table_name='price_alert')
    op.drop_table('price_alert')
    op.drop_index('idx_notification_user_read', table_name='notification')
    op.drop_table('notification')
    op.drop_table('vote')
    op.drop_index('idx_comment_parent', table_name='comment')
    op.drop_index('idx_comment_trip', table_name='comment')
    op.drop_table('comment')
    op.drop_index('idx_invitation_trip_email', table_name='invitation')
    op.drop_table('invitation')
    op.drop_index('idx_collaboration_user', table_name='collaboration')
    op.drop_table('collaboration')
    op.drop_index('idx_status_history_trip', table_name='status_history')
    op.drop_table('status_history')
    op.drop_index('idx_activity_trip_day', table_name='activity')
    op.drop_table('activity')
    op.drop_index('idx_trip_dates', table_name='trip')
    op.drop_index('idx_trip_status', table_name='trip')
    op.drop_index('idx_trip_user', table_name='trip')
    op.drop_table('trip')
    op.drop_index('idx_user_email', table_name='user')
    op.drop_table('user')
