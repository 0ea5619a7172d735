"""Initial schema for the Rain feed

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # articles table
    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.Column("moved_to_river_at", sa.Integer(), nullable=True),
        sa.Column("moved_to_ocean_at", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_articles_user_status", "articles", ["user_id", "status"])

    # chunks table
    op.create_table(
        "chunks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("article_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("chunk_index", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("word_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_chunks_user_article", "chunks", ["user_id", "article_id"])
    op.create_index("idx_chunks_created_at", "chunks", ["created_at"])

    # chunk_ratings table
    op.create_table(
        "chunk_ratings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chunk_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("annotation", sa.Text(), nullable=True),
        sa.Column("predicted_score", sa.Float(), nullable=True),
        sa.Column("was_explore", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "chunk_id", name="uq_rating_user_chunk"),
    )
    op.create_index("idx_ratings_user_created", "chunk_ratings", ["user_id", "created_at"])

    # feed_queue table
    op.create_table(
        "feed_queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chunk_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("predicted_score", sa.Float(), nullable=False),
        sa.Column("was_explore", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "chunk_id", name="uq_queue_user_chunk"),
    )
    op.create_index("idx_queue_user_created", "feed_queue", ["user_id", "created_at"])

    # feed_items table (the Feed Log)
    op.create_table(
        "feed_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chunk_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("predicted_score", sa.Float(), nullable=False),
        sa.Column("was_explore", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("shown_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "chunk_id", name="uq_feed_item_user_chunk"),
        sa.UniqueConstraint("user_id", "position", name="uq_feed_item_user_position"),
        sqlite_autoincrement=True,
    )

    # feed_sequences table
    op.create_table(
        "feed_sequences",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("last_position", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )

    # user_feed_state table
    op.create_table(
        "user_feed_state",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("last_seen_feed_item_id", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )

    # user_settings table
    op.create_table(
        "user_settings",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("chunk_size", sa.Integer(), nullable=False),
        sa.Column("explore_ratio", sa.Float(), nullable=False),
        sa.Column("feed_batch_size", sa.Integer(), nullable=False),
        sa.Column("candidate_pool_size", sa.Integer(), nullable=False),
        sa.Column("scoring_batch_size", sa.Integer(), nullable=False),
        sa.Column("num_few_shot", sa.Integer(), nullable=False),
        sa.Column("scoring_model", sa.Text(), nullable=False),
        sa.Column("context_model", sa.Text(), nullable=False),
        sa.Column("show_explore_flag", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("user_settings")
    op.drop_table("user_feed_state")
    op.drop_table("feed_sequences")
    op.drop_table("feed_items")
    op.drop_index("idx_queue_user_created", table_name="feed_queue")
    op.drop_table("feed_queue")
    op.drop_index("idx_ratings_user_created", table_name="chunk_ratings")
    op.drop_table("chunk_ratings")
    op.drop_index("idx_chunks_created_at", table_name="chunks")
    op.drop_index("idx_chunks_user_article", table_name="chunks")
    op.drop_table("chunks")
    op.drop_index("idx_articles_user_status", table_name="articles")
    op.drop_table("articles")
