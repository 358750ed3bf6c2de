"""
Tests for rings module.
"""

import fcntl
import os
import threading

import numpy as np
import pytest

from conftest import start_graph

from fraggraph.core import BBType, Vertex
from fraggraph.exceptions import ArchiveIOError, ConfigurationError, DuplicateRecordError
from fraggraph.rings import (
    ChainLink, ClosableChain, PathSubGraph, RingClosingConformations, RingClosuresArchive,
)
from fraggraph.storage import JSONStorage


CHAIN_TP0 = "0/1/ap1ap0_0/0/ap0ap1_%1"     # Turns at scaffold 0
CHAIN_TP0_B = "0/0/ap0ap1_1/1/ap0ap1_%0"   # Turns at scaffold 0
CHAIN_TP3 = "3/0/ap0ap1_0/1/ap0ap1_%0"     # Turns at scaffold 3


def hairpin(space):
    """
    Scaffold with a two-vertex arm on AP 0 and one vertex on AP 1.

    Returns the graph and the (head, tail) ends of the arm-to-arm path.
    """
    graph, scaffold = start_graph(space, 0)
    x = space.library.get_block(BBType.FRAGMENT, 0)
    graph.append_vertex_on_ap(scaffold.get_ap(0), x.get_ap(0))
    y = space.library.get_block(BBType.FRAGMENT, 0)
    graph.append_vertex_on_ap(x.get_ap(1), y.get_ap(0))
    z = space.library.get_block(BBType.FRAGMENT, 0)
    graph.append_vertex_on_ap(scaffold.get_ap(1), z.get_ap(0))
    return graph, y, z


def new_archive(tmp_path, **kwargs):
    return RingClosuresArchive(tmp_path / "index.txt", tmp_path / "blobs", **kwargs)


class TestClosableChain:
    """Tests for ChainLink and ClosableChain."""

    def test_parse_link(self):
        """Test a link token is parsed into its fields."""
        link = ChainLink.parse("3/1/ap0ap2")
        assert link == ChainLink(3, BBType.FRAGMENT, 0, 2)

    def test_malformed_link(self):
        """Test malformed tokens raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ChainLink.parse("x/1/ap0")

    def test_from_chain_id(self):
        """Test links, turning point and size of a parsed chain."""
        chain = ClosableChain.from_chain_id(CHAIN_TP0, closable=True)
        assert chain.size == 2
        assert chain.turning_point == 1
        assert chain.turning_point_bb_id == 0
        assert chain.link(1).bb_type is BBType.SCAFFOLD
        assert "".join(chain.link_ids()) + "%1" == CHAIN_TP0
        assert str(chain) == CHAIN_TP0

    def test_bad_chain_ids(self):
        """Test missing or out-of-range turning points are rejected."""
        with pytest.raises(ConfigurationError):
            ClosableChain.from_chain_id("0/1/ap1ap0_")
        with pytest.raises(ConfigurationError):
            ClosableChain.from_chain_id("0/1/ap1ap0_%4")
        with pytest.raises(ConfigurationError):
            ClosableChain.from_chain_id("0/1/ap1ap0_%x")

    def test_link_out_of_range(self):
        """Test link() raises IndexError beyond the chain."""
        chain = ClosableChain.from_chain_id(CHAIN_TP0)
        with pytest.raises(IndexError):
            chain.link(2)

    def test_involves_vertex(self):
        """Test vertex matching at the turning point and by APs."""
        chain = ClosableChain.from_chain_id(CHAIN_TP0)
        scaffold = Vertex(10, ["A:0"] * 3, bb_type=BBType.SCAFFOLD, bb_id=0)
        frag = Vertex(11, ["B:0", "A:0"], bb_type=BBType.FRAGMENT, bb_id=0)
        assert chain.involves_vertex(scaffold) == 1
        assert chain.involves_vertex(frag) == -1
        assert chain.involves_vertex_and_ap(frag, 0, 1) == 0
        assert chain.involves_vertex_and_ap(frag, 0, 2) == -1


class TestPathSubGraph:
    """Tests for PathSubGraph."""

    def test_same_vertex(self, space):
        """Test a path from a vertex to itself is empty."""
        graph, scaffold = start_graph(space, 0)
        path = PathSubGraph(scaffold, scaffold, graph)
        assert path.is_empty()
        assert path.chain_id == ""
        assert path.to_closable_chain() is None

    def test_path_through_root(self, space):
        """Test vertices, turning point and identifiers of a path."""
        graph, head, tail = hairpin(space)
        path = PathSubGraph(head, tail, graph)
        assert len(path) == 4
        assert len(path.edges) == 3
        assert path.turning_point is graph.vertex_at_position(0)
        assert path.chain_id == "0/1/ap1ap0_0/0/ap0ap1_%1"
        assert path.rev_chain_id == "0/0/ap1ap0_0/1/ap0ap1_%0"

    def test_reverse_path(self, space):
        """Test walking the path the other way gives the reversed identifier."""
        graph, head, tail = hairpin(space)
        forward = PathSubGraph(head, tail, graph)
        backward = PathSubGraph(tail, head, graph)
        assert backward.chain_id == forward.rev_chain_id

    def test_alternatives(self, space):
        """Test forward, reverse and rotated identifiers are listed."""
        graph, head, tail = hairpin(space)
        path = PathSubGraph(head, tail, graph)
        alternatives = path.all_alternative_chain_ids
        assert alternatives[:2] == [path.chain_id, path.rev_chain_id]
        assert len(alternatives) == 4
        assert len(set(alternatives)) == 4

    def test_to_closable_chain(self, space):
        """Test conversion to a closable chain."""
        graph, head, tail = hairpin(space)
        chain = PathSubGraph(head, tail, graph).to_closable_chain(closable=True)
        assert chain.turning_point_bb_id == 0
        assert chain.closable is True

    def test_path_graph(self, space):
        """Test the standalone copy of the path."""
        graph, head, tail = hairpin(space)
        path_graph = PathSubGraph(head, tail, graph).path_graph()
        assert path_graph.vertex_count() == 4
        assert path_graph.edge_count() == 3
        assert graph.vertex_count() == 4


class TestRingClosuresArchive:
    """Tests for RingClosuresArchive."""

    def test_store_and_lookup(self, tmp_path):
        """Test verdicts and sequential record ids."""
        archive = new_archive(tmp_path)
        assert archive.store_entry(CHAIN_TP0, closable=True) == 0
        assert archive.store_entry(CHAIN_TP3, closable=False) == 1
        assert archive.closability(CHAIN_TP0) is True
        assert archive.closability(CHAIN_TP3) is False
        assert archive.closability("0/1/ap0ap1_%0") is None
        assert archive.record_id(CHAIN_TP3) == 1
        assert CHAIN_TP0 in archive
        assert len(archive) == 2

        lines = (tmp_path / "index.txt").read_text().splitlines()
        assert lines == [f"{CHAIN_TP0} 0 T", f"{CHAIN_TP3} 1 F"]

    def test_duplicate(self, tmp_path):
        """Test storing a chain twice raises DuplicateRecordError."""
        archive = new_archive(tmp_path)
        archive.store_entry(CHAIN_TP0, closable=True)
        with pytest.raises(DuplicateRecordError) as info:
            archive.store_entry(CHAIN_TP0, closable=False)
        assert info.value.record_id == 0
        assert len(archive) == 1

    def test_invalid_ids(self, tmp_path):
        """Test ids with whitespace and unparsable closable chains."""
        archive = new_archive(tmp_path)
        with pytest.raises(ArchiveIOError):
            archive.store_entry("a b", closable=False)
        with pytest.raises(ArchiveIOError):
            archive.store_entry("garbage", closable=True)
        assert not (tmp_path / "index.txt").exists()

    def test_reload(self, tmp_path):
        """Test a new instance reads the existing index."""
        new_archive(tmp_path).store_entry(CHAIN_TP0, closable=True)
        archive = new_archive(tmp_path)
        assert archive.closability(CHAIN_TP0) is True
        assert archive.store_entry(CHAIN_TP3, closable=True) == 1

    def test_refresh_across_instances(self, tmp_path):
        """Test records written by another instance become visible."""
        writer = new_archive(tmp_path)
        reader = new_archive(tmp_path)
        writer.store_entry(CHAIN_TP0, closable=True)
        assert reader.closability(CHAIN_TP0) is None
        reader.refresh()
        assert reader.closability(CHAIN_TP0) is True

    def test_append_sees_other_writers(self, tmp_path):
        """Test an append re-reads the index under lock."""
        first = new_archive(tmp_path)
        second = new_archive(tmp_path)
        first.store_entry(CHAIN_TP0, closable=True)
        with pytest.raises(DuplicateRecordError):
            second.store_entry(CHAIN_TP0, closable=True)
        assert second.store_entry(CHAIN_TP3, closable=False) == 1

    def test_partial_line_ignored(self, tmp_path):
        """Test a line without newline is picked up once completed."""
        index = tmp_path / "index.txt"
        index.write_text("c0 0 F\nc1 1 ")
        archive = RingClosuresArchive(index)
        assert len(archive) == 1
        with open(index, "a") as f:
            f.write("F\n")
        archive.refresh()
        assert archive.closability("c1") is False

    def test_append_drops_crashed_fragment(self, tmp_path):
        """Test an append under lock discards a trailing incomplete record."""
        index = tmp_path / "index.txt"
        index.write_text("c0 0 F\nc1 1")
        archive = RingClosuresArchive(index)
        assert archive.store_entry("c2", closable=False) == 1
        assert index.read_text().splitlines() == ["c0 0 F", "c2 1 F"]
        assert RingClosuresArchive(index).record_id("c2") == 1

    def test_failed_blob_leaves_no_record(self, tmp_path, monkeypatch):
        """Test a closable verdict is not indexed when its blob cannot be written."""
        archive = new_archive(tmp_path)

        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(JSONStorage, "save", fail)
        with pytest.raises(ArchiveIOError):
            archive.store_entry(CHAIN_TP0, closable=True)
        assert archive.closability(CHAIN_TP0) is None
        assert (tmp_path / "index.txt").read_text() == ""

        monkeypatch.undo()
        assert archive.store_entry(CHAIN_TP0, closable=True) == 0
        assert len(archive.conformations_of(CHAIN_TP0)) == 0

    def test_refresh_during_append(self, tmp_path, monkeypatch):
        """Test a refresh racing an append neither re-reads nor skips records."""
        shared = new_archive(tmp_path)
        other = new_archive(tmp_path)
        fsync = os.fsync
        readers = []
        seen = []

        def read():
            shared.refresh()
            seen.append(shared.closability("c0"))

        def fsync_then_read(fd):
            fsync(fd)
            if not readers:
                reader = threading.Thread(target=read)
                readers.append(reader)
                reader.start()

        monkeypatch.setattr(os, "fsync", fsync_then_read)
        assert shared.store_entry("c0", closable=False) == 0
        readers[0].join(timeout=5)
        assert not readers[0].is_alive()
        assert seen == [False]

        assert other.store_entry("c1", closable=False) == 1
        assert shared.store_entry("c2", closable=False) == 2
        lines = (tmp_path / "index.txt").read_text().splitlines()
        assert lines == ["c0 0 F", "c1 1 F", "c2 2 F"]
        reloaded = new_archive(tmp_path)
        assert [reloaded.record_id(c) for c in ("c0", "c1", "c2")] == [0, 1, 2]

    def test_concurrent_readers_and_writers(self, tmp_path):
        """Test threads sharing instances keep the index loadable."""
        shared = new_archive(tmp_path, max_lock_attempts=500, lock_retry_delay=0.01)
        other = new_archive(tmp_path, max_lock_attempts=500, lock_retry_delay=0.01)
        errors = []
        done = threading.Event()

        def write(archive, prefix):
            try:
                for i in range(10):
                    archive.store_entry(f"{prefix}{i}", closable=False)
            except Exception as e:
                errors.append(e)

        def read():
            try:
                while not done.is_set():
                    shared.refresh()
                    shared.closability("w0_0")
            except Exception as e:
                errors.append(e)

        reader = threading.Thread(target=read)
        writers = [threading.Thread(target=write, args=(shared, f"w{k}_")) for k in range(3)]
        writers.append(threading.Thread(target=write, args=(other, "o_")))
        reader.start()
        for t in writers:
            t.start()
        for t in writers:
            t.join()
        done.set()
        reader.join()

        assert errors == []
        reloaded = new_archive(tmp_path)
        assert len(reloaded) == 40
        lines = (tmp_path / "index.txt").read_text().splitlines()
        assert [int(line.split()[1]) for line in lines] == list(range(40))
        shared.refresh()
        assert len(shared) == 40
        assert shared.store_entry("last", closable=False) == 40

    def test_malformed_index(self, tmp_path):
        """Test bad verdicts and non-sequential ids raise ArchiveIOError."""
        index = tmp_path / "index.txt"
        index.write_text("c0 0 X\n")
        with pytest.raises(ArchiveIOError):
            RingClosuresArchive(index)
        index.write_text("c0 0 F\nc1 5 F\n")
        with pytest.raises(ArchiveIOError):
            RingClosuresArchive(index)
        index.write_text("c0 0 F\nc0 1 F\n")
        with pytest.raises(DuplicateRecordError):
            RingClosuresArchive(index)

    def test_lock_contention(self, tmp_path):
        """Test the store gives up when the index stays locked."""
        archive = new_archive(tmp_path, max_lock_attempts=2, lock_retry_delay=0.0)
        index = tmp_path / "index.txt"
        index.touch()
        with open(index, "a") as holder:
            fcntl.flock(holder.fileno(), fcntl.LOCK_EX)
            try:
                with pytest.raises(ArchiveIOError):
                    archive.store_entry(CHAIN_TP0, closable=True)
            finally:
                fcntl.flock(holder.fileno(), fcntl.LOCK_UN)
        assert archive.store_entry(CHAIN_TP0, closable=True) == 0

    def test_bad_lock_attempts(self, tmp_path):
        """Test at least one lock attempt is required."""
        with pytest.raises(ConfigurationError):
            new_archive(tmp_path, max_lock_attempts=0)

    def test_conformation_blobs(self, tmp_path):
        """Test conformations of closable chains are stored and read back."""
        archive = new_archive(tmp_path)
        rcc = RingClosingConformations(CHAIN_TP0, [np.array([10.0, 20.0]), np.array([30.0, 40.0])])
        record = archive.store_entry(CHAIN_TP0, closable=True, conformations=rcc)
        assert (tmp_path / "blobs" / f"{record}.json.gz").is_file()

        loaded = archive.conformations_of(CHAIN_TP0)
        assert len(loaded) == 2
        np.testing.assert_allclose(loaded.conformations[1], [30.0, 40.0])

        archive.store_entry(CHAIN_TP3, closable=False)
        assert len(archive.conformations_of(CHAIN_TP3)) == 0
        assert archive.conformations_of("0/1/ap0ap1_%0") is None

    def test_no_blobs(self, tmp_path):
        """Test blob serialization can be disabled."""
        archive = new_archive(tmp_path, serialize_blobs=False)
        archive.store_entry(CHAIN_TP0, closable=True)
        assert not list((tmp_path / "blobs").glob("*.json*"))

    def test_chains_per_turning_point(self, tmp_path):
        """Test closable chains are indexed by their turning-point block."""
        archive = new_archive(tmp_path)
        archive.store_entry(CHAIN_TP0, closable=True)
        archive.store_entry(CHAIN_TP0_B, closable=True)
        archive.store_entry(CHAIN_TP3, closable=True)
        archive.store_entry("0/0/ap1ap2_%0", closable=False)
        ids = [c.chain_id for c in archive.closable_chains_for_turning_point(0)]
        assert ids == [CHAIN_TP0, CHAIN_TP0_B]
        assert [c.conformations_ref for c in archive.closable_chains_for_turning_point(3)] == [2]
        assert archive.closable_chains_for_turning_point(7) == []

    def test_contains_chain(self, tmp_path, space):
        """Test lookup of a path through any of its alternative identifiers."""
        graph, head, tail = hairpin(space)
        path = PathSubGraph(head, tail, graph)
        archive = new_archive(tmp_path)
        assert archive.contains_chain(path) == ""
        archive.store_entry(path.rev_chain_id, closable=True)
        assert archive.contains_chain(path) == path.rev_chain_id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
