"""DPRO Gateway - control client and REST API for networked audio I/O devices."""

__version__ = "0.1.0"
