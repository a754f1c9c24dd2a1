"""Natural-language analytics over a star schema with chart inference."""

__version__ = "0.1.0"
