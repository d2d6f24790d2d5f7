"""
CineNote API Application Package

Movie ratings and reviews with a per-movie average kept consistent as
reviews are created, edited and deleted.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy engine, session factory and declarative base
- errors.py: ServiceError and the error-kind to status-code table
- main.py: FastAPI application factory and configuration
- middleware.py: CORS headers and OPTIONS preflight handling
- dependencies.py: Dependency injection (stores, engine, principals)
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (rating engine, authorization, stores)
"""

__version__ = "0.1.0"
