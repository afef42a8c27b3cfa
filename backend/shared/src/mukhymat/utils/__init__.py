"""Shared utilities for logging and money handling."""
