"""
Node directory store

Each node lives in its own directory named after its index under a single
root. Indices always form a contiguous prefix starting at zero, so the
number of provisioned nodes is found by probing until the first gap.
"""

import shutil
from pathlib import Path
from typing import Iterator, Union

from ..errors import NodeCountOverflow, UnknownNode

MAX_NODES = 2000

PID_FILE = "daemon.pid"
STDOUT_FILE = "daemon.stdout"
STDERR_FILE = "daemon.stderr"
CONFIG_FILE = "config"


class NodeDirectoryStore:
    """Maps node indices to working directories under one root"""

    def __init__(self, root: Union[str, Path], max_nodes: int = MAX_NODES):
        self.root = Path(root)
        self.max_nodes = max_nodes

    def node_dir(self, index: int) -> Path:
        return self.root / str(index)

    def config_path(self, index: int) -> Path:
        return self.node_dir(index) / CONFIG_FILE

    def pid_path(self, index: int) -> Path:
        return self.node_dir(index) / PID_FILE

    def stdout_path(self, index: int) -> Path:
        return self.node_dir(index) / STDOUT_FILE

    def stderr_path(self, index: int) -> Path:
        return self.node_dir(index) / STDERR_FILE

    def exists(self, index: int) -> bool:
        return self.node_dir(index).exists()

    def count(self) -> int:
        """Number of provisioned nodes, found by scanning for the first gap"""
        for i in range(self.max_nodes):
            if not self.exists(i):
                return i
        raise NodeCountOverflow(
            f"more than {self.max_nodes} node directories under {self.root}"
        )

    def indices(self) -> Iterator[int]:
        return iter(range(self.count()))

    def require(self, index: int) -> Path:
        """Directory of a provisioned node, or UnknownNode"""
        if index < 0 or not self.exists(index):
            raise UnknownNode(index)
        return self.node_dir(index)

    def create(self, index: int) -> Path:
        path = self.node_dir(index)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def is_empty(self) -> bool:
        """True when the root holds no entries at all, provisioned or stale"""
        if not self.root.exists():
            return True
        return next(self.root.iterdir(), None) is None

    def destroy(self):
        """Remove the whole node set"""
        if self.root.exists():
            shutil.rmtree(self.root)
