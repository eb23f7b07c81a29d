"""Browser-driven verification of credentials against external portals."""

__version__ = "0.1.0"
