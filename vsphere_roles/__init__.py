"""Role management tooling for vCenter authorization roles."""

__version__ = "0.1.0"
