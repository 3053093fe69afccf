"""Analysis modules for ingested data.

This package contains modules for:
- typing: Column type narrowing and schema inference
"""
