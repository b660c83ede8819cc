"""
Testbed cluster components

Node directory store, topology configurator, process supervisor,
readiness prober and the orchestrator composing them.
"""

__all__ = [
    'NodeDirectoryStore',
    'RepoConfig',
    'ClusterConfig',
    'TopologyConfigurator',
    'ProcessSupervisor',
    'NodeState',
    'ReadinessProber',
    'Liveness',
    'Orchestrator',
    'ShellLaunch',
    'NodeResult',
]

_MODULES = {
    'NodeDirectoryStore': 'node_store',
    'RepoConfig': 'repo_config',
    'ClusterConfig': 'topology',
    'TopologyConfigurator': 'topology',
    'ProcessSupervisor': 'supervisor',
    'NodeState': 'supervisor',
    'ReadinessProber': 'readiness',
    'Liveness': 'readiness',
    'Orchestrator': 'orchestrator',
    'ShellLaunch': 'orchestrator',
    'NodeResult': 'fanout',
}


def __getattr__(name):
    """Lazy import to keep package import light"""
    if name in _MODULES:
        from importlib import import_module
        module = import_module(f".{_MODULES[name]}", __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
