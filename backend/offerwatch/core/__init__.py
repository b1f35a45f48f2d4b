"""Core primitives shared across the application."""
