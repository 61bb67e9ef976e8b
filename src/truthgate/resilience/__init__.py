"""Failure classification and load deduplication for the truthpack store."""
