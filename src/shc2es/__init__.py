"""
shc2es - Smart Home Controller to Elasticsearch

Ingests event streams from a home-automation hub and forwards
normalized, storage-ready documents to an Elasticsearch cluster.
"""

__version__ = "0.1.0"
