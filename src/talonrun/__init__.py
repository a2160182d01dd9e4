"""Rules engine for the Jungle of Talons expedition mode."""

__version__ = "0.1.0"
