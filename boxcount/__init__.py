"""Room/session coordinator for the multiplayer box counting game."""

__version__ = "0.1.0"
