"""pod-analyzer: container resource inventory across a fleet of clusters.

The same artifact runs in two modes:
- collector: scan one cluster and report resource allocation
- dispatcher: copy itself to remote hosts and run the collector there
"""

__version__ = "0.1.0"
