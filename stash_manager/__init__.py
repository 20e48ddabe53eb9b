"""D2 Stash Manager: character save decoding and import."""

__version__ = "0.1.0"
