"""
Invocation of the daemon under test

Every daemon command runs with the node directory as its only environment,
so nodes never share state through the operator's environment.
"""

import shutil
from pathlib import Path
from typing import Dict, List

from ..errors import LaunchError
from ..utils.config import DaemonSettings


def resolve_binary(settings: DaemonSettings) -> str:
    """Absolute path of the daemon executable"""
    path = shutil.which(settings.binary)
    if path is None:
        raise LaunchError(f"daemon executable {settings.binary!r} not found")
    return path


def repo_env(settings: DaemonSettings, node_dir: Path) -> Dict[str, str]:
    return {settings.repo_env: str(node_dir)}


def init_command(settings: DaemonSettings) -> List[str]:
    return [resolve_binary(settings), *settings.init_args]


def run_command(settings: DaemonSettings) -> List[str]:
    return [resolve_binary(settings), *settings.run_args]
