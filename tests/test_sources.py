"""Tests for data sources and the merging loader."""

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from kgraph_cli.models import GraphSnapshot, NodeType, Relation
from kgraph_cli.sources import (
    DataSource,
    FileScanner,
    GitScanner,
    Loader,
    MockSource,
    SnapshotFileSource,
    SourceError,
    build_sources,
    extract_issue_references,
    parse_snapshot,
)


class TestMockSource:
    """The demo graph must be self-consistent."""

    def test_covers_every_type(self):
        snapshot = MockSource().load()
        types = {node.node_type for node in snapshot.nodes}
        assert types == set(NodeType) - {NodeType.UNKNOWN}

    def test_edges_reference_known_nodes(self):
        snapshot = MockSource().load()
        ids = {node.node_id for node in snapshot.nodes}
        for edge in snapshot.edges:
            assert edge.from_id in ids
            assert edge.to_id in ids
            assert edge.relation is not Relation.UNKNOWN

    def test_not_refreshable(self):
        assert MockSource.supports_refresh is False


class TestSnapshotFiles:
    """Tests for JSON/YAML snapshot parsing."""

    def test_json_snapshot(self, tmp_path: Path):
        payload = {
            "nodes": [
                {"id": "p", "type": "Project", "data": {"name": "Platform"}},
                {"id": "i", "type": "issue", "title": "top-level", "data": {"title": "Login", "status": "Todo"}},
            ],
            "edges": [{"from": "p", "to": "i", "relation": "owns"}],
        }
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

        snapshot = SnapshotFileSource(path).load()
        nodes = snapshot.node_map()

        assert nodes["p"].title == "Platform"
        assert nodes["i"].title == "Login"
        assert nodes["i"].node_type is NodeType.ISSUE
        assert nodes["i"].source == "file"
        assert snapshot.edges[0].relation is Relation.OWNS

    def test_yaml_snapshot(self, tmp_path: Path):
        path = tmp_path / "graph.yaml"
        path.write_text(
            "nodes:\n"
            "  - id: c1\n"
            "    type: Commit\n"
            "    message: Initial import\n"
            "  - id: f1\n"
            "    type: File\n"
            "    path: src/app.py\n"
            "    labels: python\n"
            "edges:\n"
            "  - from_id: c1\n"
            "    to_id: f1\n"
            "    relation: modifies\n",
            encoding="utf-8",
        )
        snapshot = SnapshotFileSource(path).load()
        nodes = snapshot.node_map()

        assert nodes["c1"].title == "Initial import"
        assert nodes["f1"].title == "src/app.py"
        assert nodes["f1"].labels == ("python",)
        assert snapshot.edges[0].is_hierarchical

    def test_bad_records_skipped(self):
        snapshot = parse_snapshot(
            {
                "nodes": [{"id": "a", "type": "Issue"}, {"type": "Issue"}, "junk"],
                "edges": [{"from": "a"}, 7, {"from": "a", "to": "b", "relation": "whatever"}],
            }
        )
        assert [n.node_id for n in snapshot.nodes] == ["a"]
        assert len(snapshot.edges) == 1
        assert snapshot.edges[0].relation is Relation.UNKNOWN

    def test_invalid_structure(self):
        with pytest.raises(SourceError):
            parse_snapshot(["not", "a", "mapping"])
        with pytest.raises(SourceError):
            parse_snapshot({"nodes": {"a": 1}})

    def test_unreadable_file(self, tmp_path: Path):
        with pytest.raises(SourceError):
            SnapshotFileSource(tmp_path / "missing.json").load()

    def test_malformed_yaml(self, tmp_path: Path):
        path = tmp_path / "broken.yml"
        path.write_text("nodes: [unclosed\n", encoding="utf-8")
        with pytest.raises(SourceError):
            SnapshotFileSource(path).load()

    def test_invalid_utf8_file(self, tmp_path: Path):
        path = tmp_path / "binary.json"
        path.write_bytes(b'{"nodes": [\xff\xfe]}')
        with pytest.raises(SourceError):
            SnapshotFileSource(path).load()

        snapshot, errors = Loader([SnapshotFileSource(path), MockSource()]).load_all()
        assert len(errors) == 1
        assert snapshot.nodes

    def test_scalar_and_mapping_labels(self):
        snapshot = parse_snapshot(
            {
                "nodes": [
                    {"id": "a", "type": "Issue", "labels": 5},
                    {"id": "b", "type": "Issue", "labels": "bug"},
                    {"id": "c", "type": "Issue", "labels": {"bug": 1}},
                ]
            }
        )
        labels = {node.node_id: node.labels for node in snapshot.nodes}
        assert labels == {"a": ("5",), "b": ("bug",), "c": ()}


class TestFileScanner:
    """Tests for the filesystem scanner."""

    @pytest.fixture
    def tree_root(self, tmp_path: Path) -> Path:
        root = tmp_path / "demo"
        (root / "pkg").mkdir(parents=True)
        (root / "node_modules").mkdir()
        (root / ".hidden").mkdir()
        (root / "main.py").write_text("print('hi')\n", encoding="utf-8")
        (root / "README.md").write_text("# Demo\n", encoding="utf-8")
        (root / "logo.png").write_bytes(b"\x89PNG")
        (root / "pkg" / "util.py").write_text("x = 1\ny = 2\n", encoding="utf-8")
        (root / "node_modules" / "dep.js").write_text("", encoding="utf-8")
        (root / ".hidden" / "secret.py").write_text("", encoding="utf-8")
        return root

    def test_scan(self, tree_root: Path):
        snapshot = FileScanner(tree_root, include_project=True).load()
        ids = [node.node_id for node in snapshot.nodes]

        assert ids == [
            "project:demo",
            "file:README.md",
            "file:main.py",
            "file:pkg-util.py",
            "service:dir:pkg",
        ]
        edges = {(e.from_id, e.to_id) for e in snapshot.edges}
        assert ("project:demo", "file:main.py") in edges
        assert ("service:dir:pkg", "file:pkg-util.py") in edges
        assert ("project:demo", "service:dir:pkg") in edges

    def test_file_metadata(self, tree_root: Path):
        nodes = FileScanner(tree_root).load().node_map()
        util = nodes["file:pkg-util.py"]
        assert util.title == "pkg/util.py"
        assert util.labels == ("Python",)
        assert "3 lines" in util.description
        assert "project:demo" not in nodes

    def test_max_files(self, tree_root: Path):
        snapshot = FileScanner(tree_root, max_files=1).load()
        assert [n.node_id for n in snapshot.nodes] == ["file:README.md"]

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(SourceError):
            FileScanner(tmp_path / "nope").load()


class TestGitScanner:
    """Tests for the git history scanner."""

    def test_issue_references(self):
        assert extract_issue_references("Fix #12, see (#3).") == [12, 3]
        assert extract_issue_references("abc#5 #0 #x") == []

    def test_not_a_repository(self, tmp_path: Path):
        if shutil.which("git") is None:
            pytest.skip("git not installed")
        with pytest.raises(SourceError):
            GitScanner(tmp_path).load()

    def test_hung_git_times_out(self, tmp_path: Path, monkeypatch):
        def hang(*args, **kwargs):
            raise subprocess.TimeoutExpired(cmd="git", timeout=kwargs.get("timeout"))

        monkeypatch.setattr("kgraph_cli.sources.subprocess.run", hang)
        with pytest.raises(SourceError, match="timed out"):
            GitScanner(tmp_path, timeout=1).load()

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_scan_repository(self, tmp_path: Path):
        repo = tmp_path / "repo"
        repo.mkdir()
        (repo / "app.py").write_text("print(1)\n", encoding="utf-8")

        def git(*args):
            subprocess.run(
                ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
                cwd=repo, check=True, capture_output=True,
            )

        git("init")
        git("add", "app.py")
        git("commit", "-m", "Initial commit (#3)")
        git("commit", "--allow-empty", "-m", "Second commit")

        snapshot = GitScanner(repo).load()
        by_type = {}
        for node in snapshot.nodes:
            by_type.setdefault(node.node_type, []).append(node)

        assert [n.node_id for n in by_type[NodeType.PROJECT]] == ["project:repo"]
        commits = by_type[NodeType.COMMIT]
        assert [c.title for c in commits] == ["Second commit", "Initial commit (#3)"]
        assert len(by_type[NodeType.SERVICE]) == 1

        relations = {(e.relation, e.to_id) for e in snapshot.edges}
        assert (Relation.MENTIONS, "issue:3") in relations
        assert (Relation.PARENT_OF, commits[1].node_id) in relations


class _Broken(DataSource):
    @property
    def name(self) -> str:
        return "broken"

    def load(self) -> GraphSnapshot:
        raise SourceError("unreachable")


class TestLoader:
    """Tests for merging several sources."""

    def test_failure_does_not_stop_other_sources(self, caplog):
        snapshot, errors = Loader([_Broken(), MockSource()]).load_all()

        assert errors == ("broken: unreachable",)
        assert len(snapshot.nodes) == len(MockSource().load().nodes)
        assert "Error loading from broken" in caplog.text

    def test_merge_deduplicates_nodes(self):
        snapshot, errors = Loader([MockSource(), MockSource()]).load_all()
        assert errors == ()
        ids = [n.node_id for n in snapshot.nodes]
        assert len(ids) == len(set(ids))


class TestBuildSources:
    """Tests for build_sources."""

    def test_kinds(self, tmp_path: Path):
        sources = build_sources(["mock", "git", "files"], tmp_path)
        assert [type(s) for s in sources] == [MockSource, GitScanner, FileScanner]
        assert sources[2].include_project is False

    def test_files_alone_adds_project(self, tmp_path: Path):
        (scanner,) = build_sources(["files"], tmp_path)
        assert scanner.include_project is True

    def test_duplicates_collapse(self):
        assert len(build_sources(["mock", "mock"])) == 1

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            build_sources(["jira"])

    def test_file_needs_path(self):
        with pytest.raises(ValueError):
            build_sources(["file"])
