"""
AllBeads - Federated issue graph aggregation and sync

Turns the line-delimited issue data of many independently owned git
repositories ("rigs") into one queryable dependency graph, keeps a local
snapshot cache coherent, and runs a polling daemon that mirrors
cross-repository epics as shadow beads.
"""

__version__ = "0.1.0"
__author__ = "AllBeads Team"
__license__ = "MIT"

from allbeads.core.aggregator import Aggregator, AggregatorOptions
from allbeads.core.cache import GraphCache
from allbeads.graph.federated import FederatedGraph
from allbeads.models.config import AllBeadsConfig
from allbeads.sheriff.daemon import SheriffDaemon

__all__ = [
    "__version__",
    "Aggregator",
    "AggregatorOptions",
    "AllBeadsConfig",
    "FederatedGraph",
    "GraphCache",
    "SheriffDaemon",
]
