"""
Chat completions, plain or grounded on the search index.
"""
from vector_demo.chat.bridge import ChatBridge, SearchDataSource

__all__ = [
    'ChatBridge',
    'SearchDataSource',
]
