"""API routers."""

from depgraph.api.routers import admin, dependencies, graph

__all__ = ["admin", "dependencies", "graph"]
