"""Voice agent knowledge base service: document chunking, embedding and vector search."""

__version__ = "0.1.0"
