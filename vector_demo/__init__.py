"""
Azure AI Search vector, hybrid and semantic retrieval demo.
"""
