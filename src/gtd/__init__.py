"""gtd: git-style personal task tracker core (SQLite-backed)."""

__version__ = "0.1.0"
