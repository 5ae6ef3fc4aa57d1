"""Database Declarations — SQLAlchemy Base shared by every ORM model."""
