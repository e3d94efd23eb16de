"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Campaigns table
    op.create_table(
        'campaigns',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('marketplace', sa.String(), nullable=False),
        sa.Column('promo_message', sa.String(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Products table
    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('asin', sa.String(), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_products_asin', 'products', ['asin'])

    # Campaign <-> product links
    op.create_table(
        'campaign_products',
        sa.Column('campaign_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('campaign_id', 'product_id'),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
    )

    # Reviews table
    op.create_table(
        'reviews',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('campaign_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False, server_default='N/A'),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('asin', sa.String(), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('customer_email', sa.String(), nullable=False),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('satisfaction_rating', sa.String(length=21), nullable=False),
        sa.Column('used_over_7_days', sa.Boolean(), nullable=False),
        sa.Column('review_text', sa.Text(), nullable=True),
        sa.Column('marketplace', sa.String(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('review_screenshot_url', sa.String(), nullable=True),
        sa.Column('gift_sent', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_reviews_campaign_id', 'reviews', ['campaign_id'])
    op.create_index('ix_reviews_submitted_at', 'reviews', ['submitted_at'])

    # One review per order per campaign. Reviews without an order number
    # carry the 'N/A' sentinel and are exempt.
    op.create_index(
        'uq_reviews_campaign_order',
        'reviews',
        ['campaign_id', 'order_id'],
        unique=True,
        postgresql_where=sa.text("order_id <> 'N/A'"),
    )


def downgrade() -> None:
    op.drop_index('uq_reviews_campaign_order', table_name='reviews')
    op.drop_index('ix_reviews_submitted_at', table_name='reviews')
    op.drop_index('ix_reviews_campaign_id', table_name='reviews')
    op.drop_table('reviews')
    op.drop_table('campaign_products')
    op.drop_index('ix_products_asin', table_name='products')
    op.drop_table('products')
    op.drop_table('campaigns')
