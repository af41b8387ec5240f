"""Repository package for database access functions."""
