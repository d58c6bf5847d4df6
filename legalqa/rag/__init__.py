"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text and PDF document loading
- Document chunking with overlap
- Embedding generation
- In-memory FAISS vector index
- Semantic retrieval
- Prompt assembly
"""
