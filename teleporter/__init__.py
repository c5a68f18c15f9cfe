"""Template Teleporter: propagate master templates to subscriber repositories."""

__version__ = "0.1.0"
