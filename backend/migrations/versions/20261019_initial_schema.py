"""Initial schema: departments, grants, users, vendors, budgets, allocations, security events

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Departments and grants (reference data for budgets)
2. Users with role and department
3. Vendors with the client-name requirement flag
4. Budgets (Staff / Admin) and budget allocations
5. Security events (denied actions, login failures)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


FUNDING_COLUMNS = [
    'funding_dw',
    'funding_dw_admin',
    'funding_dw_sus',
    'funding_adult',
    'funding_adult_admin',
    'funding_adult_sus',
    'funding_rr',
    'funding_h1b',
    'funding_youth_is',
    'funding_youth_os',
    'funding_youth_admin',
]


def upgrade():
    # ==========================================================================
    # 1. DEPARTMENTS AND GRANTS
    # ==========================================================================
    op.create_table('departments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('slug', sa.String(length=160), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_departments_name'),
        sa.UniqueConstraint('slug', name='uq_departments_slug'),
        sqlite_autoincrement=True
    )

    op.create_table('grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('grant_code', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_grants_name'),
        sa.UniqueConstraint('grant_code', name='uq_grants_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('grants', schema=None) as batch_op:
        batch_op.create_index('ix_grants_deleted_at', ['deleted_at'], unique=False)

    # ==========================================================================
    # 2. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('job_title', sa.String(length=100), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='kiosk'),
        sa.Column('department_id', sa.Integer(), nullable=True),
        sa.Column('site_id', sa.Integer(), nullable=True),
        sa.Column('is_site_admin', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_department_id', ['department_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_users_site_id'), ['site_id'], unique=False)

    # ==========================================================================
    # 3. VENDORS
    # ==========================================================================
    op.create_table('vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('client_name_required', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_vendors_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('vendors', schema=None) as batch_op:
        batch_op.create_index('ix_vendors_active', ['is_active'], unique=False)
        batch_op.create_index('ix_vendors_deleted_at', ['deleted_at'], unique=False)

    # ==========================================================================
    # 4. BUDGETS AND ALLOCATIONS
    # ==========================================================================
    op.create_table('budgets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('grant_id', sa.Integer(), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.Column('fiscal_year_start', sa.Date(), nullable=False),
        sa.Column('fiscal_year_end', sa.Date(), nullable=False),
        sa.Column('budget_type', sa.String(length=10), nullable=False, server_default='Staff'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['grant_id'], ['grants.id'], ),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('budgets', schema=None) as batch_op:
        batch_op.create_index('ix_budgets_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_budgets_grant_id', ['grant_id'], unique=False)
        batch_op.create_index('ix_budgets_department_id', ['department_id'], unique=False)
        batch_op.create_index('ix_budgets_fiscal_year_start', ['fiscal_year_start'], unique=False)
        batch_op.create_index('ix_budgets_deleted_at', ['deleted_at'], unique=False)

    funding_columns = [
        sa.Column(name, sa.Numeric(precision=10, scale=2), nullable=False, server_default='0.00')
        for name in FUNDING_COLUMNS
    ]
    op.create_table('budget_allocations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('budget_id', sa.Integer(), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('client_name', sa.String(length=255), nullable=True),
        sa.Column('voucher_number', sa.String(length=100), nullable=True),
        sa.Column('enrollment_date', sa.Date(), nullable=True),
        sa.Column('class_start_date', sa.Date(), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('payment_status', sa.String(length=10), nullable=False, server_default='Unpaid'),
        sa.Column('program_explanation', sa.Text(), nullable=True),
        *funding_columns,
        sa.Column('fin_voucher_received', sa.String(length=10), nullable=True),
        sa.Column('fin_accrual_date', sa.Date(), nullable=True),
        sa.Column('fin_obligated_date', sa.Date(), nullable=True),
        sa.Column('fin_comments', sa.Text(), nullable=True),
        sa.Column('fin_expense_code', sa.String(length=50), nullable=True),
        sa.Column('fin_processed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('fin_processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['budget_id'], ['budgets.id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['fin_processed_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('budget_allocations', schema=None) as batch_op:
        batch_op.create_index('ix_alloc_budget_id', ['budget_id'], unique=False)
        batch_op.create_index('ix_alloc_transaction_date', ['transaction_date'], unique=False)
        batch_op.create_index('ix_alloc_deleted_at', ['deleted_at'], unique=False)

    # ==========================================================================
    # 5. SECURITY EVENTS
    # ==========================================================================
    op.create_table('security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('security_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_security_events_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_security_events_event_type'), ['event_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_security_events_success'), ['success'], unique=False)
        batch_op.create_index('ix_security_events_user_type', ['user_id', 'event_type'], unique=False)
        batch_op.create_index('ix_security_events_occurred', ['occurred_at'], unique=False)


def downgrade():
    op.drop_table('security_events')
    op.drop_table('budget_allocations')
    op.drop_table('budgets')
    op.drop_table('vendors')
    op.drop_table('users')
    op.drop_table('grants')
    op.drop_table('departments')
