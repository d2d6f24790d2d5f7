"""
pytest Fixtures for CineNote API Tests

Shared fixtures used across all test files.

Stores open their own session per call, so tests cannot wrap everything in
one rolled-back transaction. Instead every test gets a fresh SQLite
database file under tmp_path, and the app's session factory dependency is
pointed at it.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os
import tempfile

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.gettempdir(), "cinenote-unused.db")

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.database import Base, get_session_factory
from app.main import app
from app.models import Movie, Review
from app.services.auth import Principal
from app.services.ratings import RatingEngine
from app.services.security import create_access_token
from app.services.stores import MovieStore, ReviewStore

# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """
    SQLite database file private to one test.

    A file (not :memory:) so that the worker threads of a cascading delete
    each get their own connection to the same data.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'cinenote-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@pytest.fixture
def movie_store(session_factory) -> MovieStore:
    return MovieStore(session_factory)


@pytest.fixture
def review_store(session_factory) -> ReviewStore:
    return ReviewStore(session_factory)


@pytest.fixture
def rating_engine(movie_store: MovieStore, review_store: ReviewStore) -> RatingEngine:
    return RatingEngine(movie_store, review_store, delete_batch_size=25, delete_concurrency=4)


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """
    Test client whose stores use the per-test database.

    We override the get_session_factory dependency to use our test factory.
    """
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# PRINCIPAL FIXTURES
# =============================================================================


def token_for(principal: Principal) -> str:
    """Mint an identity provider style token for a principal."""
    return create_access_token(
        {
            "sub": principal.subject_id,
            "cognito:username": principal.display_name,
            "email": f"{principal.display_name}@example.com",
            "cognito:groups": sorted(principal.groups),
        }
    )


def auth_header(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {token_for(principal)}"}


@pytest.fixture
def user() -> Principal:
    return Principal(subject_id="user-a", display_name="alice")


@pytest.fixture
def second_user() -> Principal:
    return Principal(subject_id="user-b", display_name="bob")


@pytest.fixture
def admin() -> Principal:
    return Principal(subject_id="admin-1", display_name="root", groups=frozenset({"Admin"}))


@pytest.fixture
def user_headers(user: Principal) -> dict:
    return auth_header(user)


@pytest.fixture
def second_user_headers(second_user: Principal) -> dict:
    return auth_header(second_user)


@pytest.fixture
def admin_headers(admin: Principal) -> dict:
    return auth_header(admin)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


def make_movie(
    movie_id: str = "movie-1",
    title: str = "Metropolis",
    year: int = 1927,
    created_at: datetime | None = None,
) -> Movie:
    return Movie(
        movie_id=movie_id,
        title=title,
        year=year,
        poster_url=f"https://example.com/{movie_id}.jpg",
        description=f"Description of {title}",
        rating_sum=0,
        rating_count=0,
        average_rating=None,
        created_at=created_at or datetime.now(UTC),
        updated_at=created_at or datetime.now(UTC),
    )


def make_review(movie_id: str, author_id: str, rating: int, minutes_ago: int = 0) -> Review:
    stamp = datetime.now(UTC) - timedelta(minutes=minutes_ago)
    return Review(
        movie_id=movie_id,
        author_id=author_id,
        display_name=author_id,
        rating=rating,
        comment=f"{rating} stars",
        created_at=stamp,
        updated_at=stamp,
    )


@pytest.fixture
def sample_movie(movie_store: MovieStore) -> Movie:
    """A movie with no reviews."""
    return movie_store.put_if_absent(make_movie())


@pytest.fixture
def second_movie(movie_store: MovieStore) -> Movie:
    return movie_store.put_if_absent(make_movie("movie-2", "The General", 1926))
