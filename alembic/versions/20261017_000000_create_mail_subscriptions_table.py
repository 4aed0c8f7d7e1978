"""Create org_users and mail_subscriptions tables

Revision ID: create_mail_subscriptions_table
Revises:
Create Date: 2026-10-17

mail_subscriptions holds one row per Microsoft Graph change-notification
subscription, keyed by the id Graph assigns. org_users mirrors the user
directory and is the foreign key target for subscription owners; it is
populated by directory sync, not by this service.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "create_mail_subscriptions_table"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "org_users",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("user_principal_name", sa.String(320), nullable=True),
        sa.Column("mail", sa.String(320), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_org_users"),
    )

    # Case-insensitive email lookups (UPN or mail)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_org_users_lower_upn ON org_users (lower(user_principal_name))"
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_org_users_lower_mail ON org_users (lower(mail))")

    op.create_table(
        "mail_subscriptions",
        sa.Column("subscription_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("subscription_start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_expiration_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notification_url", sa.Text(), nullable=False),
        sa.Column("client_state", sa.String(255), nullable=False),

        # Audit
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_renewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("change_type", sa.String(50), nullable=False, server_default="created"),
        sa.Column("application_id", sa.String(255), nullable=True),

        sa.PrimaryKeyConstraint("subscription_id", name="pk_mail_subscriptions"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["org_users.id"],
            name="fk_mail_subscriptions_user_id_org_users",
        ),
        sa.CheckConstraint(
            "subscription_expiration_time > subscription_start_time",
            name="ck_mail_subscriptions_expiration_after_start",
        ),
    )

    op.create_index("ix_mail_subscriptions_user_id", "mail_subscriptions", ["user_id"])
    op.create_index(
        "ix_mail_subscriptions_expiration_time",
        "mail_subscriptions",
        ["subscription_expiration_time"],
    )


def downgrade() -> None:
    op.drop_index("ix_mail_subscriptions_expiration_time", table_name="mail_subscriptions")
    op.drop_index("ix_mail_subscriptions_user_id", table_name="mail_subscriptions")
    op.drop_table("mail_subscriptions")

    op.execute("DROP INDEX IF EXISTS ix_org_users_lower_mail")
    op.execute("DROP INDEX IF EXISTS ix_org_users_lower_upn")
    op.drop_table("org_users")
