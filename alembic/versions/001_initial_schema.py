"""Initial schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

WHAT: Creates the tables for surveys, responses, sessions and the question bank.

HOW: Creates five tables:
- users: Accounts mirrored from the identity service (role and active flag)
- surveys: Survey publish state, schedule and tags
- survey_responses: Completed submissions with answers and timing
- incomplete_survey_responses: In-progress sessions
- questions: Versioned question bank

Document-shaped columns use the generic JSON type so the schema is the
same on PostgreSQL and SQLite.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "ANALYST", "RESPONDENT", name="userrole"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "surveys",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False),
        sa.Column("starts_at", sa.DateTime(), nullable=True),
        sa.Column("ends_at", sa.DateTime(), nullable=True),
        sa.Column("tag_ids", sa.JSON(), nullable=False),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
    )
    op.create_index("ix_surveys_published", "surveys", ["published"])
    op.create_index("ix_surveys_created_by_id", "surveys", ["created_by_id"])

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("survey_id", sa.Integer(), nullable=False),
        sa.Column("respondent_id", sa.String(128), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("responses", sa.JSON(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("completion_time", sa.Float(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("demographics", sa.JSON(), nullable=True),
        sa.Column("section_times", sa.JSON(), nullable=True),
        sa.Column("engagement_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_survey_responses_survey_id", "survey_responses", ["survey_id"])
    op.create_index("ix_survey_responses_respondent_id", "survey_responses", ["respondent_id"])
    op.create_index("ix_survey_responses_created_at", "survey_responses", ["created_at"])

    op.create_table(
        "incomplete_survey_responses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("survey_id", sa.Integer(), nullable=False),
        sa.Column("respondent_id", sa.String(128), nullable=False),
        sa.Column("responses", sa.JSON(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("is_abandoned", sa.Boolean(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(), nullable=False),
        sa.Column("engagement_score", sa.Float(), nullable=True),
        sa.Column("device_type", sa.String(20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_incomplete_responses_survey_respondent",
        "incomplete_survey_responses",
        ["survey_id", "respondent_id"],
    )
    op.create_index(
        "ix_incomplete_responses_started_at",
        "incomplete_survey_responses",
        ["started_at"],
    )

    op.create_table(
        "questions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("current_version", sa.Integer(), nullable=True),
        sa.Column("versions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("questions")
    op.drop_index("ix_incomplete_responses_started_at", table_name="incomplete_survey_responses")
    op.drop_index("ix_incomplete_responses_survey_respondent", table_name="incomplete_survey_responses")
    op.drop_table("incomplete_survey_responses")
    op.drop_index("ix_survey_responses_created_at", table_name="survey_responses")
    op.drop_index("ix_survey_responses_respondent_id", table_name="survey_responses")
    op.drop_index("ix_survey_responses_survey_id", table_name="survey_responses")
    op.drop_table("survey_responses")
    op.drop_index("ix_surveys_created_by_id", table_name="surveys")
    op.drop_index("ix_surveys_published", table_name="surveys")
    op.drop_table("surveys")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
