"""add currencies and keywords

Revision ID: 8b2e4d6f1a93
Revises: 3f1c2a7b9d40
Create Date: 2026-10-17 14:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '8b2e4d6f1a93'
down_revision = '3f1c2a7b9d40'
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'currencies',
        sa.Column('code', sa.String(length=3), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('symbol', sa.String(length=10), nullable=True),
        *_timestamps(),
    )

    # Insert seed currencies
    op.execute("""
        INSERT INTO currencies (code, name, symbol, created_at, updated_at) VALUES
        ('USD', 'US Dollar', '$', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('EUR', 'Euro', '€', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('GBP', 'British Pound', '£', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('CAD', 'Canadian Dollar', 'C$', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('JPY', 'Japanese Yen', '¥', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('AUD', 'Australian Dollar', 'A$', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('CHF', 'Swiss Franc', 'CHF', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP),
        ('CNY', 'Chinese Yuan', '¥', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    """)

    # Accounts opened before the registry existed keep working
    op.execute("""
        INSERT INTO currencies (code, name, symbol, created_at, updated_at)
        SELECT DISTINCT currency_code, currency_code, NULL, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
        FROM accounts
        WHERE currency_code NOT IN (SELECT code FROM currencies)
    """)

    op.create_table(
        'keywords',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_keywords_id', 'keywords', ['id'])
    op.create_index('uq_keywords_name_lower', 'keywords', [sa.text('lower(name)')], unique=True)

    op.create_table(
        'transaction_keywords',
        sa.Column(
            'transaction_id',
            sa.Integer(),
            sa.ForeignKey('transactions.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column(
            'keyword_id',
            sa.Integer(),
            sa.ForeignKey('keywords.id', ondelete='CASCADE'),
            primary_key=True,
        ),
    )
    op.create_index(
        'ix_transaction_keywords_keyword_id', 'transaction_keywords', ['keyword_id']
    )


def downgrade() -> None:
    op.drop_index('ix_transaction_keywords_keyword_id', table_name='transaction_keywords')
    op.drop_table('transaction_keywords')
    op.drop_index('uq_keywords_name_lower', table_name='keywords')
    op.drop_index('ix_keywords_id', table_name='keywords')
    op.drop_table('keywords')
    op.drop_table('currencies')
