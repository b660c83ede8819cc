"""
Unit tests for the node directory store
"""

import pytest

from iptb.cluster.node_store import NodeDirectoryStore
from iptb.errors import NodeCountOverflow, UnknownNode


class TestNodeDirectoryStore:
    """Test suite for index-to-directory mapping and node counting"""

    def test_paths_are_derived_from_index(self, tmp_path):
        store = NodeDirectoryStore(tmp_path)

        assert store.node_dir(3) == tmp_path / "3"
        assert store.pid_path(3) == tmp_path / "3" / "daemon.pid"
        assert store.stdout_path(0).name == "daemon.stdout"
        assert store.stderr_path(0).name == "daemon.stderr"
        assert store.config_path(7) == tmp_path / "7" / "config"

    def test_count_empty_root(self, tmp_path):
        store = NodeDirectoryStore(tmp_path / "missing")
        assert store.count() == 0
        assert list(store.indices()) == []

    def test_count_stops_at_first_gap(self, tmp_path):
        store = NodeDirectoryStore(tmp_path)
        for i in (0, 1, 2, 4):
            store.create(i)

        assert store.count() == 3

    def test_count_overflow_is_fatal(self, tmp_path):
        store = NodeDirectoryStore(tmp_path, max_nodes=3)
        for i in range(3):
            store.create(i)

        with pytest.raises(NodeCountOverflow):
            store.count()

    def test_require_unknown_node(self, tmp_path):
        store = NodeDirectoryStore(tmp_path)
        store.create(0)

        assert store.require(0) == tmp_path / "0"
        with pytest.raises(UnknownNode):
            store.require(1)
        with pytest.raises(UnknownNode):
            store.require(-1)

    def test_destroy_removes_all_nodes(self, tmp_path):
        store = NodeDirectoryStore(tmp_path / "testbed")
        for i in range(4):
            store.create(i)

        store.destroy()

        assert not store.root.exists()
        assert store.count() == 0
        store.destroy()

    def test_is_empty_sees_stale_entries(self, tmp_path):
        store = NodeDirectoryStore(tmp_path / "testbed")
        assert store.is_empty()

        store.create(2)

        assert store.count() == 0
        assert not store.is_empty()
