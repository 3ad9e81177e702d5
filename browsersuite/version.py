"""Version information for browsersuite."""

__version__ = "0.1.0"
