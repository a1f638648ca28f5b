"""Initial blood bank schema

Revision ID: 3f9a1c2d7b40
Revises:
Create Date: 2026-10-19 09:12:41.503118

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f9a1c2d7b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('admin', 'recipient', name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'donors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('gender', sa.String(), nullable=False),
        sa.Column('blood_group', sa.String(3), nullable=False),
        sa.Column('contact_number', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('health_status', sa.Enum('Eligible', 'Not Eligible', name='healthstatus'), nullable=False),
        sa.Column('medical_history', sa.Text()),
        sa.Column('last_donation_date', sa.Date()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_donors_id', 'donors', ['id'])
    op.create_index('ix_donors_blood_group', 'donors', ['blood_group'])

    op.create_table(
        'blood_banks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('bank_name', sa.String(), nullable=False),
        sa.Column('location', sa.Text(), nullable=False),
        sa.Column('contact_number', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_blood_banks_id', 'blood_banks', ['id'])
    op.create_index('ix_blood_banks_bank_name', 'blood_banks', ['bank_name'], unique=True)

    op.create_table(
        'recipients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_name', sa.String(), nullable=False),
        sa.Column('type', sa.Enum('Hospital', 'Research', 'EMS', 'Other', name='recipienttype'), nullable=False),
        sa.Column('contact_person', sa.String(), nullable=False),
        sa.Column('contact_number', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_recipients_id', 'recipients', ['id'])
    op.create_index('ix_recipients_organization_name', 'recipients', ['organization_name'], unique=True)
    op.create_index('ix_recipients_email', 'recipients', ['email'])

    op.create_table(
        'blood_inventory',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('bank_id', sa.Integer(), sa.ForeignKey('blood_banks.id'), nullable=False),
        sa.Column('blood_group', sa.String(3), nullable=False),
        sa.Column('available_units', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('bank_id', 'blood_group', name='uq_blood_inventory_bank_group'),
        sa.CheckConstraint('available_units >= 0', name='ck_blood_inventory_non_negative'),
    )
    op.create_index('ix_blood_inventory_id', 'blood_inventory', ['id'])
    op.create_index('ix_blood_inventory_bank_id', 'blood_inventory', ['bank_id'])
    op.create_index('ix_blood_inventory_blood_group', 'blood_inventory', ['blood_group'])

    op.create_table(
        'donations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('donor_id', sa.Integer(), sa.ForeignKey('donors.id'), nullable=False),
        sa.Column('bank_id', sa.Integer(), sa.ForeignKey('blood_banks.id'), nullable=False),
        sa.Column('blood_group', sa.String(3), nullable=False),
        sa.Column('units', sa.Integer(), nullable=False),
        sa.Column('donation_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('status', sa.Enum('valid', 'expired', 'used', name='donationstatus'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_donations_id', 'donations', ['id'])
    op.create_index('ix_donations_donor_id', 'donations', ['donor_id'])
    op.create_index('ix_donations_bank_id', 'donations', ['bank_id'])
    op.create_index('ix_donations_expiry_date', 'donations', ['expiry_date'])
    op.create_index('ix_donations_status', 'donations', ['status'])

    op.create_table(
        'blood_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('recipients.id'), nullable=False),
        sa.Column('bank_id', sa.Integer(), sa.ForeignKey('blood_banks.id'), nullable=False),
        sa.Column('blood_group', sa.String(3), nullable=False),
        sa.Column('units_requested', sa.Integer(), nullable=False),
        sa.Column('required_by', sa.Date(), nullable=False),
        sa.Column('purpose', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column(
            'status',
            sa.Enum('pending', 'approved', 'rejected', 'fulfilled', 'completed', name='requeststatus'),
            nullable=False
        ),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('request_date', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('fulfillment_date', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_blood_requests_id', 'blood_requests', ['id'])
    op.create_index('ix_blood_requests_recipient_id', 'blood_requests', ['recipient_id'])
    op.create_index('ix_blood_requests_bank_id', 'blood_requests', ['bank_id'])
    op.create_index('ix_blood_requests_status', 'blood_requests', ['status'])

    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('activity_type', sa.String(32), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('details', sa.Text()),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_activity_logs_id', 'activity_logs', ['id'])
    op.create_index('ix_activity_logs_user_id', 'activity_logs', ['user_id'])
    op.create_index('ix_activity_logs_activity_type', 'activity_logs', ['activity_type'])
    op.create_index('ix_activity_logs_timestamp', 'activity_logs', ['timestamp'])


def downgrade() -> None:
    op.drop_table('activity_logs')
    op.drop_table('blood_requests')
    op.drop_table('donations')
    op.drop_table('blood_inventory')
    op.drop_table('recipients')
    op.drop_table('blood_banks')
    op.drop_table('donors')
    op.drop_table('users')

    # Postgres keeps enum types after their tables are dropped
    if op.get_bind().dialect.name != "postgresql":
        return
    for enum_name in ('requeststatus', 'donationstatus', 'recipienttype', 'healthstatus', 'userrole'):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
