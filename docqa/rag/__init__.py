"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Word-window chunking with overlap
- Embedding generation
- FAISS vector storage
- Threshold-with-fallback retrieval
- Grounded answer synthesis
"""
