from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql as psql

# revision identifiers, used by Alembic.
revision = '0001_cartmate_schema'
down_revision = None
branch_labels = None
depends_on = None

MEMBER_ROLES = ('CREATOR', 'EDITOR', 'VIEWER')
ITEM_STATUSES = ('TODO', 'IN_PROGRESS', 'PURCHASED', 'CANCELLED')
ITEM_PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')
ITEM_UNITS = ('PIECE', 'PACK', 'DOZEN', 'G', 'KG', 'OZ', 'ML', 'L', 'CUSTOM')
ITEM_CATEGORIES = ('DAIRY', 'GRAINS', 'PRODUCE', 'MEAT', 'BEVERAGE', 'HOUSEHOLD', 'OTHER')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('username', sa.String(length=20), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('is_email_verified', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('pending_email', sa.Text(), nullable=True),
        sa.Column('verification_sent_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
    )
    op.create_unique_constraint('uq_users_email', 'users', ['email'])
    op.create_unique_constraint('uq_users_username', 'users', ['username'])

    op.create_table(
        'otp_codes',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('user_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('used', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
    )
    op.create_index('ix_otp_codes_user_id_used_code', 'otp_codes', ['user_id', 'used', 'code'])

    op.create_table(
        'lists',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('creator_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('member_cap', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
    )

    op.create_table(
        'list_members',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('list_id', psql.UUID(as_uuid=True), sa.ForeignKey('lists.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.Enum(*MEMBER_ROLES, name='memberrole'), server_default='VIEWER', nullable=False),
        sa.Column('joined_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
        sa.UniqueConstraint('list_id', 'user_id', name='uq_list_members_list_user'),
    )

    op.create_table(
        'invites',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('list_id', psql.UUID(as_uuid=True), sa.ForeignKey('lists.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
    )
    op.create_unique_constraint('uq_invites_token', 'invites', ['token'])

    op.create_table(
        'items',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('list_id', psql.UUID(as_uuid=True), sa.ForeignKey('lists.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('quantity', sa.String(length=50), server_default='1', nullable=False),
        sa.Column('unit', sa.Enum(*ITEM_UNITS, name='itemunit'), server_default='PIECE', nullable=False),
        sa.Column('custom_unit', sa.String(length=20), nullable=True),
        sa.Column('status', sa.Enum(*ITEM_STATUSES, name='itemstatus'), server_default='TODO', nullable=False),
        sa.Column('priority', sa.Enum(*ITEM_PRIORITIES, name='itempriority'), server_default='MEDIUM', nullable=False),
        sa.Column('category', sa.Enum(*ITEM_CATEGORIES, name='itemcategory'), nullable=True),
        sa.Column('tags', sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('done', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('created_by_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_to_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('purchased_by_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('purchased_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
    )

    op.create_table(
        'messages',
        sa.Column('id', psql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('list_id', psql.UUID(as_uuid=True), sa.ForeignKey('lists.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sender_id', psql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('mentions_users', sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column('mentions_items', sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text("(now() at time zone 'utc')"), nullable=True),
    )
    op.create_index('ix_messages_list_id_created_at', 'messages', ['list_id', 'created_at'])


def downgrade():
    op.drop_index('ix_messages_list_id_created_at', table_name='messages')
    op.drop_table('messages')
    op.drop_table('items')
    op.drop_constraint('uq_invites_token', 'invites', type_='unique')
    op.drop_table('invites')
    op.drop_table('list_members')
    op.drop_table('lists')
    op.drop_index('ix_otp_codes_user_id_used_code', table_name='otp_codes')
    op.drop_table('otp_codes')
    op.drop_constraint('uq_users_username', 'users', type_='unique')
    op.drop_constraint('uq_users_email', 'users', type_='unique')
    op.drop_table('users')

    for enum_name in ('itemcategory', 'itempriority', 'itemstatus', 'itemunit', 'memberrole'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
