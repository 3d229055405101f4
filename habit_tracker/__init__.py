"""Habit tracking: record store, habit repository, sessions and progress analytics."""
