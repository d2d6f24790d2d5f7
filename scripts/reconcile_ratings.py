#!/usr/bin/env python3
"""
Rating Reconciliation Script

Rebuilds every movie's rating aggregate (ratingSum, ratingCount,
averageRating) from the reviews currently stored.

Concurrent review writes to the same movie can lose an aggregate update,
and an aggregate write that fails after its review write leaves the
movie stale. Run this to bring all movies back in line.

USAGE:
    python scripts/reconcile_ratings.py
"""

import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.config import get_settings
from app.database import SessionLocal
from app.services.ratings import RatingEngine
from app.services.stores import MovieStore, ReviewStore

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("reconcile_ratings")


def main() -> int:
    engine = RatingEngine(MovieStore(SessionLocal), ReviewStore(SessionLocal))
    count = engine.recalculate_all_movie_ratings()
    logger.info(f"Recalculated rating aggregates for {count} movies")
    return 0


if __name__ == "__main__":
    sys.exit(main())
