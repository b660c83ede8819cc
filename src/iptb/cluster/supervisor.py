"""
Process supervisor for testbed daemons

Starts daemons detached from the invoking session with their output
captured to per-node log files, and records each daemon's pid in the node
directory so a later invocation can find and stop it.

Policy for an already-running node: `start` raises AlreadyRunning when the
recorded pid is alive, and discards the pid file when it is stale.
"""

import subprocess
from enum import Enum
from typing import Dict, List, Optional

import psutil

from ..errors import AlreadyRunning, IptbError, LaunchError, NotRunning
from ..utils.config import Settings
from ..utils.logger import get_logger
from .addresses import dial_address
from .daemon import repo_env, run_command
from .fanout import NodeResult
from .node_store import NodeDirectoryStore
from .readiness import ReadinessProber
from .repo_config import RepoConfig

logger = get_logger(__name__)


class NodeState(Enum):
    """Node lifecycle state"""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class ProcessSupervisor:
    """Start/stop lifecycle of the daemons of one testbed"""

    def __init__(
        self,
        store: NodeDirectoryStore,
        settings: Settings,
        prober: Optional[ReadinessProber] = None
    ):
        self.store = store
        self.settings = settings
        self.prober = prober or ReadinessProber(settings.probe)

        # Live handles for daemons started by this invocation only
        self._processes: Dict[int, subprocess.Popen] = {}
        self._states: Dict[int, NodeState] = {}

    def read_pid(self, index: int) -> int:
        path = self.store.pid_path(index)
        try:
            return int(path.read_text().strip())
        except FileNotFoundError as e:
            raise NotRunning(f"daemon {index} has no pid file") from e
        except (OSError, ValueError) as e:
            raise NotRunning(f"daemon {index} has an unreadable pid file: {e}") from e

    def _live_process(self, pid: int) -> Optional[psutil.Process]:
        try:
            proc = psutil.Process(pid)
            if proc.status() == psutil.STATUS_ZOMBIE:
                return None
            return proc
        except psutil.NoSuchProcess:
            return None

    def state(self, index: int) -> NodeState:
        """
        Lifecycle state of node `index`

        A node launched by this invocation stays STARTING until its identity
        probe succeeds. Nodes launched elsewhere are RUNNING while their
        recorded pid is alive.
        """
        known = self._states.get(index)
        if known is not None and known != NodeState.STARTING:
            return known
        proc = self._processes.get(index)
        if proc is not None:
            if proc.poll() is not None:
                self._forget(index)
                return NodeState.STOPPED
            return known
        try:
            pid = self.read_pid(index)
        except NotRunning:
            return NodeState.STOPPED
        return NodeState.RUNNING if self._live_process(pid) else NodeState.STOPPED

    def _check_not_running(self, index: int):
        try:
            pid = self.read_pid(index)
        except NotRunning:
            return
        if self._live_process(pid):
            raise AlreadyRunning(index, pid)
        logger.warning("removing stale pid file", node=index, pid=pid)
        self.store.pid_path(index).unlink(missing_ok=True)

    def start(self, index: int) -> int:
        """
        Launch the daemon of node `index`
        
        Returns:
            Pid of the launched daemon
        """
        node_dir = self.store.require(index)
        self._check_not_running(index)
        cmd = run_command(self.settings.daemon)
        self._states[index] = NodeState.STARTING

        try:
            with open(self.store.stdout_path(index), 'wb') as stdout, \
                    open(self.store.stderr_path(index), 'wb') as stderr:
                proc = subprocess.Popen(
                    cmd,
                    cwd=node_dir,
                    env=repo_env(self.settings.daemon, node_dir),
                    stdin=subprocess.DEVNULL,
                    stdout=stdout,
                    stderr=stderr,
                    start_new_session=True
                )
        except OSError as e:
            self._states[index] = NodeState.STOPPED
            raise LaunchError(f"failed to start daemon {index}: {e}") from e

        try:
            self.store.pid_path(index).write_text(str(proc.pid))
        except OSError as e:
            proc.kill()
            proc.wait()
            self._states[index] = NodeState.STOPPED
            raise LaunchError(f"failed to record pid of daemon {index}: {e}") from e

        self._processes[index] = proc
        logger.info("started daemon", node=index, pid=proc.pid)
        return proc.pid

    async def await_identity(self, index: int) -> RepoConfig:
        """Wait for node `index` to answer with its own identity, then mark it RUNNING"""
        repo = RepoConfig.load(self.store.config_path(index))
        await self.prober.wait_for_identity(repo.peer_id, dial_address(repo.api))
        self._states[index] = NodeState.RUNNING
        return repo

    def stop(self, index: int):
        """Terminate the daemon of node `index` and wait until it is reaped"""
        pid = self.read_pid(index)
        pid_path = self.store.pid_path(index)

        proc = self._live_process(pid)
        if proc is None:
            self._forget(index)
            pid_path.unlink(missing_ok=True)
            raise NotRunning(f"daemon {index} (pid {pid}) is not running")

        timeout = self.settings.supervisor.stop_timeout
        try:
            proc.terminate()
            try:
                proc.wait(timeout=timeout)
            except psutil.TimeoutExpired:
                logger.warning("daemon ignored SIGTERM, killing", node=index, pid=pid)
                proc.kill()
                proc.wait(timeout=timeout)
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            raise IptbError(f"error killing daemon {index}: {e}") from e

        self._forget(index)
        pid_path.unlink(missing_ok=True)
        logger.info("stopped daemon", node=index, pid=pid)

    def _forget(self, index: int):
        proc = self._processes.pop(index, None)
        if proc is not None:
            proc.poll()
        self._states[index] = NodeState.STOPPED

    def stop_all(self) -> List[NodeResult]:
        """Stop every provisioned node, continuing past individual failures"""
        results = []
        for index in self.store.indices():
            try:
                self.stop(index)
                results.append(NodeResult(index))
            except IptbError as e:
                logger.error("error killing daemon", node=index, error=str(e))
                results.append(NodeResult(index, error=e))
        return results

    async def start_all(self, wait_all: bool = False):
        """
        Start every provisioned node in index order
        
        Node 0 is always awaited before any other node starts, since the
        other nodes bootstrap from it. With `wait_all` every node is awaited
        and, once all are up, every node taking part in a bootstrap link
        must report at least one swarm peer.
        """
        count = self.store.count()
        repos: Dict[int, RepoConfig] = {}

        for index in range(count):
            self.start(index)

            if index == 0 or wait_all:
                repos[index] = await self.await_identity(index)

        if wait_all:
            for index in bootstrap_linked(repos):
                await self.prober.wait_for_peers(dial_address(repos[index].api))

        logger.info("testbed started", nodes=count, waited=wait_all)


def bootstrap_linked(repos: Dict[int, RepoConfig]) -> List[int]:
    """Nodes that bootstrap from a peer or are some node's bootstrap peer"""
    referenced = {
        addr.rsplit('/', 1)[-1]
        for repo in repos.values()
        for addr in repo.bootstrap
    }
    return [
        index for index, repo in sorted(repos.items())
        if repo.bootstrap or repo.peer_id in referenced
    ]
