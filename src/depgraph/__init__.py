"""depgraph - Network Dependency Graph Engine.

Ingests observed host-to-host dependency records, keeps a consistent graph
of nodes, connections and edges, and exposes it via REST API.
"""

__version__ = "0.1.0"
