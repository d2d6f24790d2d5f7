"""
Test Suite for CineNote API

Test Organization:
- conftest.py: Shared fixtures (test database, stores, client, principals)
- test_ratings.py: Rating engine arithmetic and review/aggregate consistency
- test_auth.py: Principals, tokens and capability flags
- test_batching.py: Batch fan-out used by cascading deletes
- test_movies.py: /api/v1/movies endpoints
- test_reviews.py: review endpoints and the moderation listing
- test_app.py: CORS, preflight, error mapping, health

Running Tests:
    # Run all tests
    pytest

    # Run with coverage
    pytest --cov=app --cov-report=html

    # Run specific file
    pytest tests/test_reviews.py
"""
