"""Dynamic workspace mounting wrapper for Colima devcontainers."""

__version__ = "0.4.0"
