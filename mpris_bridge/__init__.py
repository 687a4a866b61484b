"""MPRIS control bridge for the Ethereal Waves player."""

__version__ = "0.1.0"
