"""Service Hub backend: customers, mechanics and admins around service requests."""

__version__ = "0.1.0"
