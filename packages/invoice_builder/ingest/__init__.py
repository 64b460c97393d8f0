"""Producers of raw candidate records (tabular import)."""
