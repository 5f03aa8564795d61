"""Privileged program/map operations on local and remote hosts."""
