"""Utility helpers shared across vidcat modules."""
