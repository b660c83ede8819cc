"""
Testbed orchestrator

Composition root that turns operator intents (init, start, stop, restart,
get, shell) into calls on the node store, topology configurator, process
supervisor and readiness prober.
"""

import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from ..errors import ConfigurationError, UnknownAttribute
from ..utils.config import Settings
from ..utils.logger import get_logger
from .fanout import NodeResult
from .node_store import NodeDirectoryStore
from .readiness import ReadinessProber
from .repo_config import RepoConfig
from .supervisor import ProcessSupervisor
from .topology import ClusterConfig, TopologyConfigurator

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShellLaunch:
    """Request to replace the current process with an interactive shell"""
    program: str
    argv: List[str]
    env: Dict[str, str]

    def execute(self):
        """Replace the current process image; does not return"""
        os.execve(self.program, self.argv, self.env)


class Orchestrator:
    """High-level testbed operations"""

    def __init__(
        self,
        store: NodeDirectoryStore,
        settings: Settings,
        confirm: Optional[Callable[[str], bool]] = None,
        prober: Optional[ReadinessProber] = None
    ):
        self.store = store
        self.settings = settings
        self.prober = prober or ReadinessProber(settings.probe)
        self.topology = TopologyConfigurator(store, settings, confirm=confirm)
        self.supervisor = ProcessSupervisor(store, settings, prober=self.prober)

        self._getters: Dict[str, Callable[[int], str]] = {
            'id': self.peer_id,
        }

    async def init(self, cfg: ClusterConfig) -> List[NodeResult]:
        cfg.validate()
        logger.info("initializing testbed", nodes=cfg.count, bootstrap=cfg.bootstrap)
        return await self.topology.initialize(cfg)

    async def start(self, wait: bool = False):
        await self.supervisor.start_all(wait_all=wait)

    def stop(self) -> List[NodeResult]:
        return self.supervisor.stop_all()

    async def restart(self, wait: bool = False) -> List[NodeResult]:
        results = self.stop()
        await self.start(wait=wait)
        return results

    def peer_id(self, index: int) -> str:
        self.store.require(index)
        return RepoConfig.load(self.store.config_path(index)).peer_id

    def get(self, attr: str, index: int) -> str:
        getter = self._getters.get(attr)
        if getter is None:
            raise UnknownAttribute(attr)
        return getter(index)

    def shell(
        self,
        index: int,
        environ: Optional[Mapping[str, str]] = None
    ) -> ShellLaunch:
        """
        Build the environment for an interactive shell bound to node `index`

        The shell sees the node's repository path plus NODE<i>=<peer id>
        for every node in the testbed.
        """
        environ = os.environ if environ is None else environ

        shell = environ.get('SHELL')
        if not shell:
            raise ConfigurationError("couldn't find shell: SHELL is not set")

        node_dir = self.store.require(index)

        env = dict(environ)
        env[self.settings.daemon.repo_env] = str(node_dir)
        for i in self.store.indices():
            env[f"NODE{i}"] = self.peer_id(i)

        return ShellLaunch(program=shell, argv=[shell], env=env)
