"""
Federated dependency graph and its queries.
"""

from allbeads.graph.cycles import find_cycles, normalize_cycle
from allbeads.graph.federated import CrossRepoEdge, FederatedGraph, GraphStats

__all__ = [
    "CrossRepoEdge",
    "FederatedGraph",
    "GraphStats",
    "find_cycles",
    "normalize_cycle",
]
