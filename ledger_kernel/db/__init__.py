"""Database infrastructure: declarative base, engine/session management, ORM listeners."""
