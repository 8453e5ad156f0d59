"""Initial schema: lessons, links, news and progress.

Tables that already exist are skipped, so a database first created by the
application's startup can be brought under migration with `upgrade head`.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import context, op

revision = "20261019000001"
down_revision = None
branch_labels = None
depends_on = None


def _existing_tables() -> set[str]:
    if context.is_offline_mode():
        return set()
    return set(sa.inspect(op.get_bind()).get_table_names())


def upgrade() -> None:
    existing = _existing_tables()

    if "lessons" not in existing:
        op.create_table(
            "lessons",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("section", sa.String(length=16), nullable=False),
            sa.Column("ord", sa.Integer(), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("message_id", sa.BigInteger(), nullable=False),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.PrimaryKeyConstraint("id", name="pk_lessons"),
            sa.UniqueConstraint("section", "ord", name="uq_lessons_section_ord"),
            sa.CheckConstraint("section IN ('prep', 'steam')", name="ck_lessons_section"),
            sa.CheckConstraint("ord > 0", name="ck_lessons_ord_positive"),
        )

    if "links" not in existing:
        op.create_table(
            "links",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("url", sa.Text(), nullable=False),
            sa.Column("ord", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.PrimaryKeyConstraint("id", name="pk_links"),
        )
        op.create_index("ix_links_ord_id", "links", ["ord", "id"])

    if "news" not in existing:
        op.create_table(
            "news",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("message_id", sa.BigInteger(), nullable=False),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.PrimaryKeyConstraint("id", name="pk_news"),
            sa.UniqueConstraint("message_id", name="uq_news_message_id"),
        )

    if "progress" not in existing:
        op.create_table(
            "progress",
            sa.Column("user_id", sa.BigInteger(), nullable=False),
            sa.Column("section", sa.String(length=16), nullable=False),
            sa.Column("ord", sa.Integer(), nullable=False),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.PrimaryKeyConstraint("user_id", "section", name="pk_progress"),
            sa.CheckConstraint("section IN ('prep', 'steam')", name="ck_progress_section"),
        )


def downgrade() -> None:
    op.drop_table("progress")
    op.drop_table("news")
    op.drop_index("ix_links_ord_id", table_name="links")
    op.drop_table("links")
    op.drop_table("lessons")
