"""Initial schema: offers, notification ledger, applications

Revision ID: 1_create_tables
Revises:
Create Date: 2026-10-19 12:00:00
"""

from alembic import op
import sqlalchemy as sa

revision = '1_create_tables'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    # ### Создание таблицы offers ###
    op.create_table(
        'offers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('reference', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('method', sa.String(), nullable=False),
        # локальное время портала без tzinfo
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('winner_name', sa.String(), nullable=True),
        sa.Column('creator_name', sa.String(), nullable=True),
        sa.Column('creator_email', sa.String(), nullable=True),
        sa.Column('notification_emails', sa.JSON(), nullable=True),
        sa.Column('removed_default_documents', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.Index('ix_offers_id', 'id'),
        sa.Index('ix_offers_deadline', 'deadline')
    )

    # ### Создание таблицы custom_required_documents ###
    op.create_table(
        'custom_required_documents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=False),
        sa.Column('document_key', sa.String(), nullable=False),
        sa.Column('document_name', sa.String(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('offer_id', 'document_key', name='uq_offer_custom_document'),
        sa.Index('ix_custom_required_documents_id', 'id')
    )

    # ### Создание таблицы offer_notifications (журнал отправленных порогов) ###
    op.create_table(
        'offer_notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=False),
        sa.Column('threshold', sa.String(), nullable=False),
        sa.Column('recipients_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('fired_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('offer_id', 'threshold', name='uq_offer_threshold'),
        sa.Index('ix_offer_notifications_id', 'id'),
        sa.Index('ix_offer_notifications_offer_id', 'offer_id')
    )

    # ### Создание таблицы applications ###
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('tel_number', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('offer_id', 'email', name='uq_offer_applicant'),
        sa.Index('ix_applications_id', 'id'),
        sa.Index('ix_applications_offer_id', 'offer_id')
    )

    # ### Создание таблицы application_documents ###
    op.create_table(
        'application_documents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('document_key', sa.String(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False, server_default='standard'),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_id', 'document_key', name='uq_application_document'),
        sa.Index('ix_application_documents_id', 'id')
    )

    # ### Создание таблицы errors ###
    op.create_table(
        'errors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=True),
        sa.Column('module', sa.String(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.Index('ix_errors_id', 'id')
    )

def downgrade():
    op.drop_index('ix_errors_id', table_name='errors')
    op.drop_table('errors')
    op.drop_table('application_documents')
    op.drop_index('ix_applications_offer_id', table_name='applications')
    op.drop_table('applications')
    op.drop_index('ix_offer_notifications_offer_id', table_name='offer_notifications')
    op.drop_table('offer_notifications')
    op.drop_table('custom_required_documents')
    op.drop_index('ix_offers_deadline', table_name='offers')
    op.drop_table('offers')
