"""
Shared fixtures for IPTB tests

The daemon under test is replaced by a small executable script that
understands `init` (writes a config document with a fresh peer ID) and
`daemon` (runs until signalled).
"""

import json
import socket
import stat
import sys
import time
from pathlib import Path

import psutil
import pytest

sys.path.append(str(Path(__file__).parent.parent / 'src'))

from iptb.cluster.node_store import NodeDirectoryStore
from iptb.utils.config import load_settings

FAKE_DAEMON_BODY = '''
import json
import os
import signal
import sys
import time
import uuid

repo = os.environ["IPFS_PATH"]
command = sys.argv[1] if len(sys.argv) > 1 else ""

if command == "init":
    if os.path.basename(repo) in FAIL:
        sys.stderr.write("init failed\\n")
        sys.exit(1)
    config = {
        "Identity": {"PeerID": "Qm" + uuid.uuid4().hex, "PrivKey": "secret"},
        "Datastore": {"StorageMax": "10GB"},
        "Addresses": {
            "Swarm": ["/ip4/0.0.0.0/tcp/4001", "/ip6/::/tcp/4001"],
            "API": "/ip4/127.0.0.1/tcp/5001",
            "Gateway": "/ip4/127.0.0.1/tcp/8080",
        },
        "Bootstrap": ["/ip4/104.131.131.82/tcp/4001/ipfs/QmaCpDMGvV2BGHeYERUEnRQAwe3N8SzbUtfsmvsqQLuvuJ"],
        "Discovery": {"MDNS": {"Enabled": True, "Interval": 10}},
    }
    with open(os.path.join(repo, "config"), "w") as f:
        json.dump(config, f, indent=2)
elif command == "daemon":
    if STUBBORN:
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
    open(os.path.join(repo, "daemon.ready"), "w").close()
    while True:
        time.sleep(1)
else:
    sys.exit(2)
'''


def write_fake_daemon(path: Path, fail=(), stubborn=False) -> Path:
    header = (
        f"#!{sys.executable}\n"
        f"FAIL = {tuple(str(i) for i in fail)!r}\n"
        f"STUBBORN = {stubborn!r}\n"
    )
    path.write_text(header + FAKE_DAEMON_BODY)
    path.chmod(path.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def unused_port() -> int:
    """A TCP port nothing is listening on"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def fake_daemon(tmp_path):
    return write_fake_daemon(tmp_path / "fake-ipfs")


@pytest.fixture
def make_fake_daemon(tmp_path):
    """Fake daemon factory; `fail` names node indices whose init exits non-zero"""
    def factory(name="fake-ipfs-custom", fail=(), stubborn=False):
        return write_fake_daemon(tmp_path / name, fail=fail, stubborn=stubborn)
    return factory


@pytest.fixture
def make_settings(fake_daemon):
    """Settings factory pointing at the fake daemon with a short probe budget"""
    def factory(**overrides):
        base = {
            'daemon': {'binary': str(fake_daemon)},
            'probe': {'attempts': 5, 'interval': 0.01, 'request_timeout': 1.0},
            'supervisor': {'stop_timeout': 5.0},
            'init': {'max_workers': 4},
        }
        for section, values in overrides.items():
            base.setdefault(section, {}).update(values)
        return load_settings(overrides=base)
    return factory


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def store(tmp_path):
    return NodeDirectoryStore(tmp_path / "testbed")


@pytest.fixture
def make_repo(store):
    """Write a minimal daemon config for a node without running init"""
    def factory(index, peer_id=None, api="/ip4/127.0.0.1/tcp/5001", bootstrap=None):
        node_dir = store.create(index)
        config = {
            "Identity": {"PeerID": peer_id or f"QmPeer{index}"},
            "Addresses": {
                "Swarm": ["/ip4/0.0.0.0/tcp/4001"],
                "API": api,
                "Gateway": "/ip4/127.0.0.1/tcp/8080",
            },
            "Bootstrap": bootstrap,
            "Discovery": {"MDNS": {"Enabled": True}},
        }
        (node_dir / "config").write_text(json.dumps(config, indent=2))
        return node_dir
    return factory


@pytest.fixture
def reap_daemons(store):
    """Kill any daemon left running by a test"""
    yield
    if not store.root.exists():
        return
    for pid_file in store.root.glob("*/daemon.pid"):
        try:
            proc = psutil.Process(int(pid_file.read_text()))
            proc.kill()
            proc.wait(timeout=5)
        except (ValueError, psutil.Error):
            pass


@pytest.fixture
def wait_for_file():
    return _wait_for_file


def _wait_for_file(path: Path, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if path.exists():
            return True
        time.sleep(0.02)
    return False
