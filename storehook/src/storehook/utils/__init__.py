"""Shared utilities for storehook."""
