"""Create users, recipes and counters tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Initial RecipeHub schema.
       - users:    accounts (bcrypt password hashes)
       - recipes:  recipe documents; ingredients, method steps and comments
                   are JSON lists on the row, `version` backs compare-and-swap
       - counters: named integer counters; `recipe_id` allocates recipe IDs

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(150), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="bcrypt hash; plain passwords are never stored",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "recipes",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=False,
            nullable=False,
            comment="Sequential ID from the recipe_id counter",
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("cuisine", sa.String(120), nullable=False),
        sa.Column("cooking_time", sa.Integer(), nullable=False, comment="Minutes"),
        sa.Column("ingredients", sa.JSON(), nullable=False),
        sa.Column("method_steps", sa.JSON(), nullable=False),
        sa.Column("nutritional_info", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("youtube_link", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("image_url", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("comments", sa.JSON(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by", sa.String(150), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_recipes_created_by", "recipes", ["created_by"])

    op.create_table(
        "counters",
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("counters")
    op.drop_index("ix_recipes_created_by", table_name="recipes")
    op.drop_table("recipes")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
