"""Lifecycle orchestration: load, monitor, unload."""
