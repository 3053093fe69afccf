"""tabload - schema inference and staged loading of uploaded tabular files."""

__version__ = "0.1.0"
