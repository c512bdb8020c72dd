# studio_booking/routes/__init__.py
"""HTTP routes. Versioned routers live under ``routes.v1``."""
