"""Business logic services used by handlers.

Services are imported lazily by handlers so that a cold start for
``GET /health`` never touches SQLAlchemy or opens a database connection.
"""

# Do NOT import services here - use lazy loading in handlers instead
