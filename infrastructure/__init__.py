"""Infrastructure layer: the music catalog's adapters to outside services.

Modules:
    auth          bcrypt password hashing and HS256 JWT access tokens.
    rate_limiter  Per-client Redis sliding-window rate limiter.
    metrics       Prometheus metrics registry.
    uploads       Disk storage for uploaded images.
"""
