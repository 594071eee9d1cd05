"""Initial migration

Revision ID: 001
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ### Applications table ###
    op.create_table('applications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('reference_number', sa.String(length=16), nullable=False),
        sa.Column('type', sa.Enum('tourist', 'agency', name='application_type'), nullable=False),
        sa.Column('language', sa.String(length=2), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('given_names', sa.String(length=255), nullable=False),
        sa.Column('last_names', sa.String(length=255), nullable=False),
        sa.Column('sex', sa.Enum('M', 'F', name='sex'), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=False),
        sa.Column('birth_place', sa.String(length=255), nullable=False),
        sa.Column('residence_country', sa.String(length=100), nullable=False),
        sa.Column('nationality', sa.String(length=100), nullable=False),
        sa.Column('passport_number', sa.String(length=50), nullable=False),
        sa.Column('passport_validity', sa.Date(), nullable=False),
        sa.Column('passport_issuer', sa.String(length=255), nullable=False),
        sa.Column('flight_number', sa.String(length=20), nullable=False),
        sa.Column('arrival_date', sa.Date(), nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('arrival_city', sa.String(length=100), nullable=False),
        sa.Column('has_existing_visa', sa.Boolean(), nullable=False),
        sa.Column('accommodation_name', sa.String(length=255), nullable=False),
        sa.Column('accommodation_address', sa.String(length=500), nullable=False),
        sa.Column('accommodation_city', sa.String(length=100), nullable=False),
        sa.Column('payment_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.Enum('pending_payment', 'payment_received', 'processing', 'approved', 'rejected', name='application_status'), nullable=False),
        sa.Column('payment_status', sa.Enum('unpaid', 'paid', 'failed', name='payment_status'), nullable=False),
        sa.Column('completion_state', sa.Enum('incomplete', 'complete', name='completion_state'), nullable=False),
        sa.Column('failed_step', sa.String(length=32), nullable=True),
        sa.Column('document_path', sa.String(length=255), nullable=True),
        sa.Column('payment_url', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('payment_amount > 0', name='check_positive_payment_amount'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_applications_reference_number'), 'applications', ['reference_number'], unique=True)

    # ### Agency applications table ###
    op.create_table('agency_applications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('agency_name', sa.String(length=255), nullable=False),
        sa.Column('agency_contact', sa.String(length=255), nullable=False),
        sa.Column('agency_email', sa.String(length=255), nullable=False),
        sa.Column('agency_phone', sa.String(length=50), nullable=False),
        sa.Column('agency_address', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['id'], ['applications.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    op.drop_table('agency_applications')
    op.drop_index(op.f('ix_applications_reference_number'), table_name='applications')
    op.drop_table('applications')
    op.execute('DROP TYPE IF EXISTS completion_state')
    op.execute('DROP TYPE IF EXISTS payment_status')
    op.execute('DROP TYPE IF EXISTS application_status')
    op.execute('DROP TYPE IF EXISTS sex')
    op.execute('DROP TYPE IF EXISTS application_type')
