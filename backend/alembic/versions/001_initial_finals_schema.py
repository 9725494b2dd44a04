"""Initial migration: create final_brackets, final_round_entries, final_matches tables

Revision ID: 001_initial_finals
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_finals"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create final_brackets table
    op.create_table(
        "final_brackets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_final_brackets_tournament_id", "final_brackets", ["tournament_id"])

    # Create final_round_entries table
    op.create_table(
        "final_round_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("round_no", sa.Integer(), nullable=False),
        sa.Column("slot_no", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["bracket_id"],
            ["final_brackets.id"],
        ),
        sa.UniqueConstraint("bracket_id", "round_no", "slot_no", name="uq_final_entry_slot"),
    )
    op.create_index("ix_final_round_entries_bracket_id", "final_round_entries", ["bracket_id"])

    # Create final_matches table (reason column is end_reason here; older
    # deployments may carry finish_reason instead)
    op.create_table(
        "final_matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("round_no", sa.Integer(), nullable=False),
        sa.Column("match_no", sa.Integer(), nullable=False),
        sa.Column("winner_id", sa.String(), nullable=True),
        sa.Column("loser_id", sa.String(), nullable=True),
        sa.Column("winner_score", sa.Integer(), nullable=True),
        sa.Column("loser_score", sa.Integer(), nullable=True),
        sa.Column("end_reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["bracket_id"],
            ["final_brackets.id"],
        ),
        sa.UniqueConstraint("bracket_id", "round_no", "match_no", name="uq_final_match_key"),
    )
    op.create_index("ix_final_matches_bracket_id", "final_matches", ["bracket_id"])


def downgrade() -> None:
    op.drop_index("ix_final_matches_bracket_id", table_name="final_matches")
    op.drop_table("final_matches")
    op.drop_index("ix_final_round_entries_bracket_id", table_name="final_round_entries")
    op.drop_table("final_round_entries")
    op.drop_index("ix_final_brackets_tournament_id", table_name="final_brackets")
    op.drop_table("final_brackets")
