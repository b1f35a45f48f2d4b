"""Scraper utilities for page fetching, browser sessions, and data normalization."""
