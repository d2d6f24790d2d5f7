"""
Services Package

Business logic kept separate from HTTP handling (routers).

Current services:
- auth.py: Principal model and authorization checks
- batching.py: Bounded concurrent batch fan-out with outcome reporting
- catalog.py: Movie catalog and review listings
- rate_limiter.py: Rate limiting with slowapi
- ratings.py: Rating aggregation engine
- security.py: JWT verification for identity provider tokens
- stores.py: Movie and review stores
"""
