"""Database models."""

from learnmap.models.node import Node
from learnmap.models.roadmap import Roadmap

__all__ = [
    "Roadmap",
    "Node",
]
