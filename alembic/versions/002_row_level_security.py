"""Row level security on tenant tables

Revision ID: 002_row_level_security
Revises: 001_initial
Create Date: 2025-08-13 00:00:00.000000

"""
from alembic import op

# revision identifiers, used by Alembic.
revision = '002_row_level_security'
down_revision = '001_initial'
branch_labels = None
depends_on = None


TENANT_TABLES = ['customers', 'review_requests', 'suppressions', 'events']


def upgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    for table in TENANT_TABLES:
        op.execute(f'ALTER TABLE {table} ENABLE ROW LEVEL SECURITY')
        op.execute(f"""
            CREATE POLICY {table}_business_isolation ON {table}
            USING (business_id::text = current_setting('app.current_business_id', true))
            WITH CHECK (business_id::text = current_setting('app.current_business_id', true))
        """)

    # Businesses are visible only to themselves
    op.execute('ALTER TABLE businesses ENABLE ROW LEVEL SECURITY')
    op.execute("""
        CREATE POLICY businesses_isolation ON businesses
        USING (id::text = current_setting('app.current_business_id', true))
    """)


def downgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute('DROP POLICY IF EXISTS businesses_isolation ON businesses')
    op.execute('ALTER TABLE businesses DISABLE ROW LEVEL SECURITY')
    for table in reversed(TENANT_TABLES):
        op.execute(f'DROP POLICY IF EXISTS {table}_business_isolation ON {table}')
        op.execute(f'ALTER TABLE {table} DISABLE ROW LEVEL SECURITY')
