"""Configuration management commands."""
