"""Shared test data helpers."""
