"""create ledger tables

Revision ID: 3f1c2a7b9d40
Revises:
Create Date: 2026-10-17 09:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f1c2a7b9d40'
down_revision = None
branch_labels = None
depends_on = None

transaction_type = sa.Enum('EXPENSE', 'INCOME', name='transactiontype')
debt_status = sa.Enum('OPEN', 'CLOSED', name='debtstatus')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _snapshot() -> list[sa.Column]:
    return [
        sa.Column('original_default_currency_code', sa.String(length=3), nullable=True),
        sa.Column('exchange_rate_to_original_default', sa.Numeric(20, 10), nullable=True),
        sa.Column('amount_in_original_default', sa.Numeric(14, 2), nullable=True),
    ]


def upgrade() -> None:
    # Accounts and categories, names unique regardless of case
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('currency_code', sa.String(length=3), nullable=False),
        sa.Column('balance', sa.Numeric(14, 2), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_accounts_id', 'accounts', ['id'])
    op.create_index('uq_accounts_name_lower', 'accounts', [sa.text('lower(name)')], unique=True)

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_categories_id', 'categories', ['id'])
    op.create_index(
        'uq_categories_name_lower', 'categories', [sa.text('lower(name)')], unique=True
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('account_name', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency_code', sa.String(length=3), nullable=False),
        sa.Column('category_name', sa.String(length=255), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('related_debt_id', sa.Integer(), nullable=True),
        *_snapshot(),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_transactions_amount_non_negative'),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_account_name', 'transactions', ['account_name'])
    op.create_index('ix_transactions_category_name', 'transactions', ['category_name'])
    op.create_index('ix_transactions_date', 'transactions', ['date'])
    op.create_index('ix_transactions_related_debt_id', 'transactions', ['related_debt_id'])

    op.create_table(
        'transfers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('source_account_name', sa.String(length=255), nullable=False),
        sa.Column('destination_account_name', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency_code', sa.String(length=3), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('destination_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('destination_currency_code', sa.String(length=3), nullable=True),
        *_snapshot(),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_transfers_amount_non_negative'),
    )
    op.create_index('ix_transfers_id', 'transfers', ['id'])
    op.create_index('ix_transfers_source_account_name', 'transfers', ['source_account_name'])
    op.create_index(
        'ix_transfers_destination_account_name', 'transfers', ['destination_account_name']
    )
    op.create_index('ix_transfers_date', 'transfers', ['date'])

    op.create_table(
        'debts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('parent_transaction_id', sa.Integer(), nullable=False),
        sa.Column('status', debt_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['parent_transaction_id'], ['transactions.id'], ondelete='CASCADE'
        ),
    )
    op.create_index('ix_debts_id', 'debts', ['id'])
    op.create_index(
        'ix_debts_parent_transaction_id', 'debts', ['parent_transaction_id'], unique=True
    )

    # Pivot-relative daily rates
    op.create_table(
        'exchange_rates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pivot_currency_code', sa.String(length=3), nullable=False),
        sa.Column('quote_currency_code', sa.String(length=3), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('rate', sa.Numeric(20, 10), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('quote_currency_code', 'date', name='uq_exchange_rates_quote_date'),
        sa.CheckConstraint('rate > 0', name='ck_exchange_rates_rate_positive'),
    )
    op.create_index('ix_exchange_rates_id', 'exchange_rates', ['id'])
    op.create_index(
        'ix_exchange_rates_quote_date', 'exchange_rates', ['quote_currency_code', 'date']
    )


def downgrade() -> None:
    op.drop_table('exchange_rates')
    op.drop_table('debts')
    op.drop_table('transfers')
    op.drop_table('transactions')
    op.drop_table('categories')
    op.drop_table('accounts')
    debt_status.drop(op.get_bind(), checkfirst=True)
    transaction_type.drop(op.get_bind(), checkfirst=True)
