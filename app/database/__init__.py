"""Database models package."""
