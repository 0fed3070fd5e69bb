"""Retrieval-augmented chat over a pgvector content table."""

__version__ = "0.1.0"
