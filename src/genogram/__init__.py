"""Genogram engine - family-relationship graphs for child-welfare case planning.

A mutable command store over immutable graph snapshots, with household
containment, contact-recency tracking and support-network analytics.
"""

__version__ = "0.1.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    if name == "GenogramStore":
        from genogram.graph import GenogramStore
        return GenogramStore
    if name == "GraphSnapshot":
        from genogram.models import GraphSnapshot
        return GraphSnapshot
    if name == "analytics":
        from genogram import analytics
        return analytics
    if name == "models":
        from genogram import models
        return models
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
