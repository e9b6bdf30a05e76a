"""Access Log Immutability Enforcement

Revision ID: 002_access_log_immutability
Revises: 001_initial
Create Date: 2026-10-05

Creates PostgreSQL triggers that block UPDATE and DELETE on
content_access_logs. Each row is written exactly once per granted access.

SECURITY NOTE: Production deployments should also configure the application
database role with INSERT/SELECT only permissions on this table.
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = '002_access_log_immutability'
down_revision = '001_initial'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # CREATE IMMUTABILITY TRIGGER FUNCTION
    # ==========================================================================

    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_access_log_modification()
        RETURNS TRIGGER AS $$
        BEGIN
            IF TG_OP = 'UPDATE' THEN
                RAISE EXCEPTION 'UPDATE operations are not permitted on % table. Access log entries are immutable.', TG_TABLE_NAME
                    USING ERRCODE = 'restrict_violation';
            ELSIF TG_OP = 'DELETE' THEN
                RAISE EXCEPTION 'DELETE operations are not permitted on % table. Access log entries are immutable.', TG_TABLE_NAME
                    USING ERRCODE = 'restrict_violation';
            END IF;
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
    """)

    # ==========================================================================
    # CREATE TRIGGERS ON CONTENT_ACCESS_LOGS TABLE
    # ==========================================================================

    op.execute("""
        CREATE TRIGGER content_access_logs_prevent_update
        BEFORE UPDATE ON content_access_logs
        FOR EACH ROW
        EXECUTE FUNCTION prevent_access_log_modification();
    """)

    op.execute("""
        CREATE TRIGGER content_access_logs_prevent_delete
        BEFORE DELETE ON content_access_logs
        FOR EACH ROW
        EXECUTE FUNCTION prevent_access_log_modification();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS content_access_logs_prevent_delete ON content_access_logs")
    op.execute("DROP TRIGGER IF EXISTS content_access_logs_prevent_update ON content_access_logs")
    op.execute("DROP FUNCTION IF EXISTS prevent_access_log_modification()")
