"""
API Routers Package

This package contains FastAPI routers that handle API endpoints.

Router Structure:
- movies.py: /api/v1/movies/* catalog endpoints
- reviews.py: /api/v1/movies/{movie_id}/reviews/* and /api/v1/reviews

Each router is imported and registered in main.py.
"""

from app.routers.movies import router as movies_router
from app.routers.reviews import router as reviews_router

__all__ = [
    "movies_router",
    "reviews_router",
]
