"""partnerflow initial schema

Revision ID: 3b7e91c4d2a0
Revises:
Create Date: 2025-06-02 10:14:37.512093

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7e91c4d2a0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


profile_status = sa.Enum('Active', 'Suspended', 'Pending', 'Inactive', name='profilestatusenum')
billing_cycle = sa.Enum('monthly', 'annual', name='billingcycleenum')
partnership_status = sa.Enum('Active', 'Pending', 'Inactive', name='partnershipstatusenum')
sale_status = sa.Enum('Pending', 'Cleared', 'Refunded', name='salestatusenum')
payout_status = sa.Enum('Due', 'Paid', 'Scheduled', name='payoutstatusenum')
recipients = sa.Enum('All', 'Active', 'Pending', name='recipientsenum')
resource_type = sa.Enum('Image', 'PDF Guide', 'Video Link', 'Email Swipe', name='resourcetypeenum')


def upgrade() -> None:
    op.create_table(
        'auth_users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('refresh_token', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('last_sign_in_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('avatar', sa.String(), nullable=True),
        sa.Column('roles', sa.JSON(), nullable=True),
        sa.Column('current_plan', sa.String(), nullable=True),
        sa.Column('billing_cycle', billing_cycle, nullable=True),
        sa.Column('status', profile_status, nullable=False),
        sa.Column('join_date', sa.Date(), nullable=True),
        sa.Column('trial_ends_at', sa.DateTime(), nullable=True),
        sa.Column('onboarding_step_completed', sa.Integer(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('sales', sa.Integer(), nullable=True),
        sa.Column('commission', sa.Float(), nullable=True),
        sa.Column('clicks', sa.Integer(), nullable=True),
        sa.Column('referral_code', sa.String(), nullable=True),
        sa.Column('coupon_code', sa.String(), nullable=True),
        sa.Column('paypal_email', sa.String(), nullable=True),
        sa.Column('notifications', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'])
    op.create_index('ix_profiles_referral_code', 'profiles', ['referral_code'])

    op.create_table(
        'platform_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('announcement_text', sa.String(), nullable=True),
        sa.Column('announcement_enabled', sa.Boolean(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'partnerships',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('creator_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('affiliate_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('status', partnership_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('creator_id', 'affiliate_id', name='uq_partnership_pair'),
    )
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('sales_page_url', sa.String(), nullable=True),
        sa.Column('sales_count', sa.Integer(), nullable=True),
        sa.Column('clicks', sa.Integer(), nullable=True),
        sa.Column('commission_tiers', sa.JSON(), nullable=True),
        sa.Column('bonuses', sa.JSON(), nullable=True),
        sa.Column('creation_date', sa.Date(), nullable=True),
        sa.Column('is_publicly_listed', sa.Boolean(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'payouts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('creator_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('affiliate_name', sa.String(), nullable=True),
        sa.Column('affiliate_avatar', sa.String(), nullable=True),
        sa.Column('amount', sa.Float(), nullable=True),
        sa.Column('period', sa.String(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', payout_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('product_name', sa.String(), nullable=True),
        sa.Column('affiliate_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('creator_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('sale_amount', sa.Float(), nullable=False),
        sa.Column('commission_amount', sa.Float(), nullable=True),
        sa.Column('bonus_amount', sa.Float(), nullable=True),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('status', sale_status, nullable=False),
        sa.Column('payout_id', sa.Integer(), sa.ForeignKey('payouts.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('plan', sa.String(), nullable=False),
        sa.Column('billing_cycle', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'communications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('sender_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('subject', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('recipients', recipients, nullable=False),
        sa.Column('date', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'user_settings',
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id'), primary_key=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('clearing_days', sa.Integer(), nullable=True),
        sa.Column('notifications', sa.JSON(), nullable=True),
        sa.Column('integrations', sa.JSON(), nullable=True),
    )
    op.create_table(
        'resources',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('type', resource_type, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('thumbnail_url', sa.String(), nullable=True),
        sa.Column('product_ids', sa.JSON(), nullable=True),
        sa.Column('creation_date', sa.Date(), nullable=True),
    )
    op.create_table(
        'affiliate_clicks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('affiliate_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('clicked_at', sa.DateTime(), nullable=True),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        'affiliate_clicks', 'resources', 'user_settings', 'communications', 'payments',
        'sales', 'payouts', 'products', 'partnerships', 'platform_settings',
    ):
        op.drop_table(table)
    op.drop_index('ix_profiles_referral_code', table_name='profiles')
    op.drop_index('ix_profiles_email', table_name='profiles')
    op.drop_table('profiles')
    op.drop_table('auth_users')

    # Postgres keeps enum types after their tables are gone
    bind = op.get_bind()
    for enum_type in (resource_type, recipients, payout_status, sale_status,
                      partnership_status, billing_cycle, profile_status):
        enum_type.drop(bind, checkfirst=True)
