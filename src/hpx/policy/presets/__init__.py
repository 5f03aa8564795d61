"""Bundled preset policy documents."""
