"""
Topology configurator for IPTB

Provisions node repositories and rewrites each node's network configuration
so that the cluster forms the requested bootstrap topology.

Strategies:
- star: node 0 is the hub with no bootstrap peers, every other node
  bootstraps from node 0
- none: no node has bootstrap peers
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import networkx as nx

from ..errors import (
    AlreadyExists,
    ConfigurationError,
    InitFailed,
    LaunchError,
    UnsupportedTopology,
)
from ..utils.config import Settings
from ..utils.logger import get_logger
from .addresses import api_addr, bootstrap_addr, swarm_addr
from .daemon import init_command, repo_env
from .fanout import NodeResult, fan_out, failures
from .node_store import NodeDirectoryStore
from .repo_config import RepoConfig

logger = get_logger(__name__)

STAR = "star"
NONE = "none"
STRATEGIES = (STAR, NONE)

OVERWRITE_PROMPT = "testbed nodes already exist, overwrite? [y/n]"


@dataclass(frozen=True)
class ClusterConfig:
    """Input to cluster initialization"""
    count: int
    force: bool = False
    bootstrap: str = STAR
    port_start: int = 4002
    mdns: bool = False

    def validate(self):
        if self.count < 1:
            raise ConfigurationError("node count must be at least 1")
        if self.bootstrap not in STRATEGIES:
            raise UnsupportedTopology(self.bootstrap)

    def swarm_addr_for_peer(self, index: int) -> str:
        return swarm_addr(self.port_start, index)

    def api_addr_for_peer(self, index: int) -> str:
        return api_addr(self.port_start, index)


def build_topology(strategy: str, count: int) -> nx.DiGraph:
    """
    Bootstrap graph for a strategy

    An edge u -> v means node u lists node v as a bootstrap peer.
    """
    if strategy == STAR:
        graph = nx.DiGraph()
        graph.add_nodes_from(range(count))
        graph.add_edges_from((i, 0) for i in range(1, count))
        return graph
    if strategy == NONE:
        return nx.empty_graph(count, create_using=nx.DiGraph)
    raise UnsupportedTopology(strategy)


def configuration_order(graph: nx.DiGraph) -> List[int]:
    """Nodes ordered so every bootstrap peer is configured before its dependents"""
    return list(nx.lexicographical_topological_sort(graph.reverse(copy=False)))


class TopologyConfigurator:
    """
    Creates node repositories and applies a bootstrap strategy

    Repository initialization fans out across nodes; configuration writes
    are sequential because dependents read their peers' written configs.
    """

    def __init__(
        self,
        store: NodeDirectoryStore,
        settings: Settings,
        confirm: Optional[Callable[[str], bool]] = None
    ):
        self.store = store
        self.settings = settings
        self.confirm = confirm

    async def initialize(self, cfg: ClusterConfig) -> List[NodeResult]:
        """
        Provision `cfg.count` nodes and configure their topology
        
        Returns:
            Per-node results of repository initialization

        Raises:
            InitFailed: carrying every node's result, when any node failed;
                topology is not configured in that case
        """
        cfg.validate()

        if cfg.force:
            self.store.destroy()
        elif not self.store.is_empty():
            if not (self.confirm and self.confirm(OVERWRITE_PROMPT)):
                raise AlreadyExists(f"testbed nodes already exist in {self.store.root}")
            logger.info("removing existing nodes", root=str(self.store.root))
            self.store.destroy()

        results = await fan_out(
            range(cfg.count),
            self._init_node,
            max_workers=self.settings.init.max_workers
        )
        failed = failures(results)
        if failed:
            logger.error(
                "repository initialization failed",
                nodes=[r.index for r in failed]
            )
            raise InitFailed(results)

        self.configure(cfg)
        return results

    async def _init_node(self, index: int) -> int:
        node_dir = self.store.create(index)
        cmd = init_command(self.settings.daemon)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                env=repo_env(self.settings.daemon, node_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT
            )
        except OSError as e:
            raise LaunchError(f"failed to run {cmd[0]}: {e}") from e

        output, _ = await proc.communicate()
        if proc.returncode != 0:
            raise LaunchError(
                f"init of node {index} exited with {proc.returncode}: "
                f"{output.decode(errors='replace').strip()}"
            )

        logger.debug("node repository initialized", node=index)
        return index

    def configure(self, cfg: ClusterConfig):
        """Rewrite every node's addresses and bootstrap list"""
        graph = build_topology(cfg.bootstrap, cfg.count)
        dial: Dict[int, str] = {}

        for index in configuration_order(graph):
            path = self.store.config_path(index)
            repo = RepoConfig.load(path)

            repo.bootstrap = [dial[peer] for peer in sorted(graph.successors(index))]
            repo.swarm = [cfg.swarm_addr_for_peer(index)]
            repo.api = cfg.api_addr_for_peer(index)
            repo.gateway = ""
            repo.mdns = cfg.mdns
            repo.write(path)

            dial[index] = bootstrap_addr(repo.swarm[0], repo.peer_id)

        logger.info("topology configured", strategy=cfg.bootstrap, nodes=cfg.count)
