"""Parley forum posts service."""
