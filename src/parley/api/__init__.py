"""HTTP API for Parley."""
