"""Korean/Japanese novel translation with a consistent per-novel name glossary."""

__version__ = "0.1.0"
