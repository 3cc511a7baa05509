"""API routes."""

from learnmap.api.routes import nodes, roadmaps

__all__ = ["roadmaps", "nodes"]
