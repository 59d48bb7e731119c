"""create_ingest_logs_jobs_and_job_alerts

Revision ID: create_ingestion_tables
Revises:
Create Date: 2026-10-17 00:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa

from jobboard.database_types import GUID, JSON


revision = 'create_ingestion_tables'
down_revision = None
branch_labels = None
depends_on = None

PUBLISHED_WHATSAPP_WHERE = sa.text("status = 'PUBLISHED' AND source_type = 'WHATSAPP'")


def upgrade() -> None:
    op.create_table(
        'ingest_logs',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('raw_text', sa.Text(), nullable=False),
        sa.Column('group_id', sa.String(), nullable=True),
        sa.Column('message_id', sa.String(), nullable=True),
        sa.Column('source', sa.String(), nullable=False, server_default='WHATSAPP'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('parsed_json', JSON(), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_ingest_logs_message_id'), 'ingest_logs', ['message_id'], unique=False)
    op.create_index('idx_ingest_logs_status_created', 'ingest_logs', ['status', 'created_at'], unique=False)

    op.create_table(
        'jobs',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('company_name', sa.String(), nullable=False, server_default='Unknown'),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('job_type', sa.String(), nullable=False, server_default='unknown'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('application_link', sa.String(), nullable=True),
        sa.Column('salary_range', sa.String(), nullable=True),
        sa.Column('contact', sa.String(), nullable=True),
        sa.Column('deadline', sa.String(), nullable=True),
        sa.Column('source_type', sa.String(), nullable=False, server_default='MANUAL'),
        sa.Column('source_message_id', GUID(), nullable=True),
        sa.Column('posted_by', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='PENDING_APPROVAL'),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('applicants_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_jobs_status'), 'jobs', ['status'], unique=False)
    op.create_index(op.f('ix_jobs_source_message_id'), 'jobs', ['source_message_id'], unique=False)
    op.create_index('idx_jobs_title_company', 'jobs', ['title', 'company_name'], unique=False)
    # Closes the check-then-insert race for ingested jobs
    op.create_index(
        'uq_jobs_published_whatsapp_title_company',
        'jobs',
        ['title', 'company_name'],
        unique=True,
        postgresql_where=PUBLISHED_WHATSAPP_WHERE,
        sqlite_where=PUBLISHED_WHATSAPP_WHERE,
    )

    op.create_table(
        'job_alerts',
        sa.Column('id', GUID(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('keywords', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('job_type', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_job_alerts_user_id'), 'job_alerts', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_job_alerts_user_id'), table_name='job_alerts')
    op.drop_table('job_alerts')

    op.drop_index('uq_jobs_published_whatsapp_title_company', table_name='jobs')
    op.drop_index('idx_jobs_title_company', table_name='jobs')
    op.drop_index(op.f('ix_jobs_source_message_id'), table_name='jobs')
    op.drop_index(op.f('ix_jobs_status'), table_name='jobs')
    op.drop_table('jobs')

    op.drop_index('idx_ingest_logs_status_created', table_name='ingest_logs')
    op.drop_index(op.f('ix_ingest_logs_message_id'), table_name='ingest_logs')
    op.drop_table('ingest_logs')
