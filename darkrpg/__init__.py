"""Dark RPG: an idle hunter RPG played through Discord slash commands."""

__version__ = "0.4.0"
