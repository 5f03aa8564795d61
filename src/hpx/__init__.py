"""hpx — XDP packet filters generated from declarative access policies."""

__version__ = "0.1.0"
