#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample movies and reviews for development.

USAGE:
    # Make sure you're in the project root with venv activated
    python scripts/seed_data.py

This script:
1. Connects to the database using app settings
2. Clears existing movies and reviews (optional)
3. Creates sample movies through the catalog service
4. Submits sample reviews through the rating engine, so every movie
   starts with a consistent rating aggregate
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete

from app.config import get_settings
from app.database import SessionLocal, create_tables
from app.models import Movie, Review
from app.services import catalog
from app.services.auth import Principal
from app.services.ratings import RatingEngine
from app.services.stores import MovieStore, ReviewStore

settings = get_settings()

SEED_ADMIN = Principal(
    subject_id="seed-admin",
    display_name="seed-admin",
    groups=frozenset({settings.admin_group}),
)

SEED_REVIEWERS = [
    Principal(subject_id="seed-user-1", display_name="cinephile"),
    Principal(subject_id="seed-user-2", display_name="popcorn"),
    Principal(subject_id="seed-user-3", display_name="midnight-matinee"),
]

MOVIES = [
    {
        "title": "Metropolis",
        "year": 1927,
        "poster_url": "https://example.com/posters/metropolis.jpg",
        "description": "In a futuristic city sharply divided between workers "
                       "and planners, a young man falls for a prophet of the underground.",
        "ratings": [5, 4, 5],
    },
    {
        "title": "The General",
        "year": 1926,
        "poster_url": "https://example.com/posters/the-general.jpg",
        "description": "A train engineer chases the Union spies who stole his locomotive.",
        "ratings": [4, 4],
    },
    {
        "title": "Seven Samurai",
        "year": 1954,
        "poster_url": "https://example.com/posters/seven-samurai.jpg",
        "description": "Farmers hire seven masterless samurai to defend their village.",
        "ratings": [5],
    },
    {
        "title": "Stalker",
        "year": 1979,
        "poster_url": "https://example.com/posters/stalker.jpg",
        "description": "A guide leads two men through the Zone to a room said to grant wishes.",
        "ratings": [],
    },
]


def clear_data() -> None:
    """Clear all existing movies and reviews."""
    print("Clearing existing data...")
    with SessionLocal() as db:
        db.execute(delete(Review))
        db.execute(delete(Movie))
        db.commit()
    print("Data cleared.")


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    create_tables()
    if clear_existing:
        clear_data()

    movies = MovieStore(SessionLocal)
    engine = RatingEngine(movies, ReviewStore(SessionLocal))

    review_total = 0
    for data in MOVIES:
        movie = catalog.create_movie(
            movies,
            SEED_ADMIN,
            title=data["title"],
            year=data["year"],
            poster_url=data["poster_url"],
            description=data["description"],
        )
        for reviewer, rating in zip(SEED_REVIEWERS, data["ratings"]):
            engine.upsert_review(
                movie.movie_id,
                rating=rating,
                comment=f"{rating} stars from {reviewer.display_name}.",
                principal=reviewer,
            )
            review_total += 1
        print(f"  - {movie.title} ({movie.year}): {len(data['ratings'])} reviews")

    print("=" * 60)
    print("Database seeding completed successfully!")
    print("=" * 60)
    print(f"\nSummary:")
    print(f"  - Movies: {len(MOVIES)}")
    print(f"  - Reviews: {review_total}")
    print(f"\nYou can now access the API at http://localhost:{settings.port}")
    print(f"API documentation at http://localhost:{settings.port}/docs")


if __name__ == "__main__":
    seed_database()
