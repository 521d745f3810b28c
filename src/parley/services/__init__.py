"""Service layer for Parley."""
