"""Shared utilities for Boomer."""
