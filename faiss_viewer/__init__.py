"""
FAISS bundle viewer: connect to a serialized FAISS index plus its memories and query it.
"""

__version__ = "0.1.0"
