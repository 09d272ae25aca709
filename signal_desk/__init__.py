"""
Signal Desk - games industry feed aggregator.

This package ingests syndication feeds from configured sources, tags every
new item with keyword rules plus optional AI enrichment, groups related
articles into stories and ranks the stories by editorial importance.

Main entry point is the CLI via the `signal-desk` command.

Example:
    $ signal-desk seed -c config.yaml
    $ signal-desk ingest -c config.yaml
    $ signal-desk stories --explain
"""

__all__ = [
    "__version__",
    "IngestionCoordinator",
    "HybridTagger",
    "cluster_items",
    "score_cluster",
    "score_item",
]
__version__ = "0.1.0"

from .cluster import cluster_items
from .ingest import IngestionCoordinator
from .scoring import score_cluster, score_item
from .tagging import HybridTagger
