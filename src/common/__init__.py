"""Shared helpers: error taxonomy, HTTP access and logging configuration."""
