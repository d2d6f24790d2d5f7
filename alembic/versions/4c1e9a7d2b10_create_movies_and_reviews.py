"""create_movies_and_reviews

Revision ID: 4c1e9a7d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1e9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'movies',
        sa.Column('movie_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False, comment='Movie title'),
        sa.Column('year', sa.Integer(), nullable=False, comment='Release year'),
        sa.Column('poster_url', sa.String(length=2000), nullable=False, comment='Poster image reference'),
        sa.Column('description', sa.Text(), nullable=False, comment='Movie description'),
        sa.Column(
            'rating_sum',
            sa.Integer(),
            nullable=False,
            server_default='0',
            comment='Sum of all current review ratings'
        ),
        sa.Column(
            'rating_count',
            sa.Integer(),
            nullable=False,
            server_default='0',
            comment='Number of current reviews'
        ),
        sa.Column(
            'average_rating',
            sa.Numeric(precision=3, scale=2),
            nullable=True,
            comment='Average review rating (1.00-5.00), null if no reviews'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('year >= 1888', name='ck_movie_year_min'),
        sa.CheckConstraint('rating_sum >= 0', name='ck_movie_rating_sum_non_negative'),
        sa.CheckConstraint('rating_count >= 0', name='ck_movie_rating_count_non_negative'),
        sa.PrimaryKeyConstraint('movie_id'),
    )
    op.create_index(op.f('ix_movies_title'), 'movies', ['title'], unique=False)
    op.create_index(op.f('ix_movies_created_at'), 'movies', ['created_at'], unique=False)

    # No foreign key to movies: the rating engine cascades deletes itself
    op.create_table(
        'reviews',
        sa.Column('movie_id', sa.String(length=64), nullable=False),
        sa.Column('author_id', sa.String(length=255), nullable=False),
        sa.Column(
            'display_name',
            sa.String(length=255),
            nullable=True,
            comment="Snapshot of the author's username or email"
        ),
        sa.Column('rating', sa.Integer(), nullable=False, comment='Rating from 1-5 stars'),
        sa.Column('comment', sa.Text(), nullable=False, comment='Review text content'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_review_rating_range'),
        sa.PrimaryKeyConstraint('movie_id', 'author_id'),
    )
    op.create_index(op.f('ix_reviews_author_id'), 'reviews', ['author_id'], unique=False)
    op.create_index(op.f('ix_reviews_created_at'), 'reviews', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_reviews_created_at'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_author_id'), table_name='reviews')
    op.drop_table('reviews')
    op.drop_index(op.f('ix_movies_created_at'), table_name='movies')
    op.drop_index(op.f('ix_movies_title'), table_name='movies')
    op.drop_table('movies')
