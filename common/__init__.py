"""Common module."""
