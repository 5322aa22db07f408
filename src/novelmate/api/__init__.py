"""HTTP API for novels, chapters, name dictionaries and translation."""
