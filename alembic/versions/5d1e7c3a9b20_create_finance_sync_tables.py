"""Create candidate finance sync tables

Revision ID: 5d1e7c3a9b20
Revises:
Create Date: 2026-10-18 09:00:00.000000

Creates the tables the donor sync pipeline reads and writes:
- candidates: external-reference view (FEC linkage + last sync)
- candidate_committees: committee links with the Schedule A resumption cursor
- donors: aggregated donors, replaced per (candidate, cycle) pass
- finance_reconciliation: local vs FEC-reported totals
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5d1e7c3a9b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create sync tables."""
    op.create_table(
        'candidates',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('state', sa.String(length=2), nullable=True),
        sa.Column('office', sa.String(length=50), nullable=True),
        sa.Column('district', sa.String(length=5), nullable=True),
        sa.Column('bioguide_id', sa.String(length=10), nullable=True,
                  comment='Congress bioguide id (crosswalk key)'),
        sa.Column('fec_candidate_id', sa.String(length=9), nullable=True),
        sa.Column('fec_committee_id', sa.String(length=9), nullable=True,
                  comment='Primary (principal) committee'),
        sa.Column('last_donor_sync', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=True,
                  server_default=sa.text('now()')),
    )
    op.create_index('ix_candidates_state', 'candidates', ['state'])
    op.create_index('ix_candidates_bioguide_id', 'candidates', ['bioguide_id'])
    op.create_index('ix_candidates_fec_candidate_id', 'candidates', ['fec_candidate_id'])

    op.create_table(
        'candidate_committees',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('candidate_id', sa.String(length=64),
                  sa.ForeignKey('candidates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fec_committee_id', sa.String(length=9), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('designation', sa.String(length=1), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('source_fec_candidate_id', sa.String(length=9), nullable=True),
        sa.Column('last_index', sa.String(length=32), nullable=True),
        sa.Column('last_contribution_receipt_date', sa.String(length=32), nullable=True),
        sa.Column('last_cycle', sa.Integer(), nullable=True),
        sa.Column('sync_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sync_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
        sa.UniqueConstraint('candidate_id', 'fec_committee_id', name='uq_candidate_committee'),
    )
    op.create_index(
        'ix_candidate_committees_candidate_id', 'candidate_committees', ['candidate_id']
    )

    op.create_table(
        'donors',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('donor_key', sa.String(length=64), nullable=False),
        sa.Column('candidate_id', sa.String(length=64),
                  sa.ForeignKey('candidates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('donor_type', sa.String(length=20), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('transaction_count', sa.Integer(), nullable=False),
        sa.Column('first_receipt_date', sa.Date(), nullable=True),
        sa.Column('last_receipt_date', sa.Date(), nullable=True),
        sa.Column('recipient_committee_id', sa.String(length=9), nullable=False),
        sa.Column('recipient_committee_name', sa.String(length=200), nullable=True),
        sa.Column('contributor_city', sa.String(length=50), nullable=True),
        sa.Column('contributor_state', sa.String(length=2), nullable=True),
        sa.Column('contributor_zip', sa.String(length=9), nullable=True),
        sa.Column('employer', sa.String(length=200), nullable=True),
        sa.Column('occupation', sa.String(length=100), nullable=True),
        sa.Column('line_number', sa.String(length=10), nullable=True),
        sa.Column('receipt_class', sa.String(length=20), nullable=False),
        sa.Column('is_conduit_org', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
        sa.UniqueConstraint('candidate_id', 'donor_key', name='uq_donor_candidate_key'),
    )
    op.create_index('ix_donors_candidate_cycle', 'donors', ['candidate_id', 'cycle'])

    op.create_table(
        'finance_reconciliation',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('candidate_id', sa.String(length=64),
                  sa.ForeignKey('candidates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cycle', sa.Integer(), nullable=False),
        sa.Column('local_itemized_cents', sa.BigInteger(), nullable=False),
        sa.Column('local_transfers_cents', sa.BigInteger(), nullable=False),
        sa.Column('fec_itemized_cents', sa.BigInteger(), nullable=False),
        sa.Column('fec_unitemized_cents', sa.BigInteger(), nullable=False),
        sa.Column('fec_total_receipts_cents', sa.BigInteger(), nullable=False),
        sa.Column('delta_cents', sa.BigInteger(), nullable=False),
        sa.Column('delta_pct', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False, comment='ok, warning, error'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('checked_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('now()')),
        sa.UniqueConstraint('candidate_id', 'cycle', name='uq_reconciliation_candidate_cycle'),
    )
    op.create_index(
        'ix_finance_reconciliation_candidate_id', 'finance_reconciliation', ['candidate_id']
    )


def downgrade() -> None:
    """Drop sync tables."""
    op.drop_index('ix_finance_reconciliation_candidate_id', table_name='finance_reconciliation')
    op.drop_table('finance_reconciliation')
    op.drop_index('ix_donors_candidate_cycle', table_name='donors')
    op.drop_table('donors')
    op.drop_index('ix_candidate_committees_candidate_id', table_name='candidate_committees')
    op.drop_table('candidate_committees')
    op.drop_index('ix_candidates_fec_candidate_id', table_name='candidates')
    op.drop_index('ix_candidates_bioguide_id', table_name='candidates')
    op.drop_index('ix_candidates_state', table_name='candidates')
    op.drop_table('candidates')
