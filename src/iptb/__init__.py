"""
IPTB: InterPlanetary TestBed

Provisions, starts, monitors and tears down a local cluster of
independently configured daemon nodes for integration testing of a
peer-to-peer network stack.
"""

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "ClusterConfig",
    "NodeDirectoryStore",
]


def __getattr__(name):
    """Lazy import to avoid loading aiohttp unless needed"""
    if name in __all__:
        from iptb import cluster
        return getattr(cluster, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
