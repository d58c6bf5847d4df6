"""Retrieval-augmented question answering over legal documents."""

__version__ = "0.1.0"
