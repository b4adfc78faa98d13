"""Data sources that materialize a :class:`GraphSnapshot`.

Each source loads nodes and edges from one place (a demo graph, a
snapshot file, local git history, the filesystem). The :class:`Loader`
merges them and keeps going when one fails.
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml

from .config import MAX_COMMITS, MAX_FILES
from .models import Edge, GraphSnapshot, Node, NodeType, Relation

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised when a source cannot produce a snapshot."""


class DataSource(ABC):
    """One origin of nodes and edges."""

    supports_refresh: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def load(self) -> GraphSnapshot:
        """Load the full node/edge set, raising :class:`SourceError` on failure."""


def sanitize_id(text: str) -> str:
    return text.replace("/", "-").replace(" ", "-")


# ----------------------------------------------------------------------
# Demo graph
# ----------------------------------------------------------------------

_MOCK_NODES: Tuple[Dict[str, Any], ...] = (
    {"id": "project:kgraph", "type": "Project", "title": "kgraph navigator", "status": "active",
     "description": "Terminal navigator for project knowledge graphs.",
     "url": "https://example.com/kgraph"},
    {"id": "project:docs", "type": "Project", "title": "Documentation site", "status": "backlog"},
    {"id": "service:api", "type": "Service", "title": "API gateway"},
    {"id": "service:auth", "type": "Service", "title": "Auth service"},
    {"id": "issue:1", "type": "Issue", "title": "Render forest with collapse markers",
     "status": "In Progress", "priority": 2, "labels": ["ui", "tree"], "identifier": "KG-1",
     "project": "kgraph navigator",
     "description": "Show expand and collapse markers next to nodes that own children."},
    {"id": "issue:2", "type": "Issue", "title": "Keep the focused line inside the viewport",
     "status": "Done", "priority": 3, "labels": ["ui"], "identifier": "KG-2",
     "project": "kgraph navigator"},
    {"id": "issue:3", "type": "Issue", "title": "Search across node titles", "status": "Backlog",
     "priority": 4, "identifier": "KG-3", "project": "kgraph navigator"},
    {"id": "issue:4", "type": "Issue", "title": "Navigate the relationships list", "status": "Todo",
     "priority": 3, "identifier": "KG-4", "project": "kgraph navigator"},
    {"id": "issue:5", "type": "Issue", "title": "Gateway drops empty snapshot files",
     "status": "Blocked", "priority": 1, "labels": ["bug"], "identifier": "KG-5",
     "project": "kgraph navigator"},
    {"id": "issue:6", "type": "Issue", "title": "Write the getting-started guide",
     "status": "In Review", "priority": 3, "identifier": "DOC-1", "project": "Documentation site"},
    {"id": "pr:10", "type": "PR", "title": "Add forest renderer", "status": "Open",
     "url": "https://example.com/kgraph/pull/10"},
    {"id": "pr:11", "type": "PR", "title": "Clamp viewport scroll offset", "status": "Merged"},
    {"id": "pr:12", "type": "PR", "title": "Docs skeleton", "status": "Draft"},
    {"id": "commit:a1b2c3d4", "type": "Commit", "title": "Add tree connectors (#1)"},
    {"id": "commit:e5f6a7b8", "type": "Commit", "title": "Clamp scroll into range (#2)"},
    {"id": "file:kgraph_cli-render.py", "type": "File", "title": "kgraph_cli/render.py"},
    {"id": "file:kgraph_cli-viewport.py", "type": "File", "title": "kgraph_cli/viewport.py"},
)

# PRs hang under the issue they implement; issue:5 has two owners.
_MOCK_EDGES: Tuple[Tuple[str, str, str], ...] = (
    ("project:kgraph", "issue:1", "owns"),
    ("project:kgraph", "issue:2", "owns"),
    ("project:kgraph", "issue:3", "owns"),
    ("project:kgraph", "issue:4", "owns"),
    ("project:kgraph", "issue:5", "owns"),
    ("service:api", "issue:5", "owns"),
    ("project:docs", "issue:6", "owns"),
    ("project:docs", "pr:12", "owns"),
    ("issue:1", "pr:10", "implements"),
    ("issue:2", "pr:11", "implements"),
    ("pr:10", "commit:a1b2c3d4", "owns"),
    ("pr:11", "commit:e5f6a7b8", "owns"),
    ("commit:a1b2c3d4", "file:kgraph_cli-render.py", "modifies"),
    ("commit:e5f6a7b8", "file:kgraph_cli-viewport.py", "modifies"),
    ("issue:5", "issue:3", "blocks"),
    ("issue:3", "issue:4", "related"),
    ("commit:a1b2c3d4", "issue:1", "mentions"),
    ("commit:e5f6a7b8", "issue:2", "mentions"),
    ("commit:a1b2c3d4", "commit:e5f6a7b8", "parent_of"),
    ("service:api", "service:auth", "calls"),
)


class MockSource(DataSource):
    """Static demo graph covering every node type and relation."""

    supports_refresh = False

    @property
    def name(self) -> str:
        return "mock"

    def load(self) -> GraphSnapshot:
        nodes = tuple(node_from_record(dict(record), source="mock") for record in _MOCK_NODES)
        edges = tuple(Edge.create(a, b, rel) for a, b, rel in _MOCK_EDGES)
        return GraphSnapshot(nodes=nodes, edges=edges)


# ----------------------------------------------------------------------
# Snapshot files (JSON / YAML)
# ----------------------------------------------------------------------

def _extract_title(node_id: str, data: Mapping[str, Any]) -> str:
    for key in ("title", "name", "message", "path"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return node_id


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def node_from_record(record: Mapping[str, Any], source: str = "") -> Node:
    """Build a node from a snapshot record.

    Fields may sit under a ``data`` mapping or at the top level of the
    record; ``data`` wins when both are present.
    """
    node_id = str(record["id"])
    data: Dict[str, Any] = {k: v for k, v in record.items() if k not in ("id", "type", "data")}
    nested = record.get("data")
    if isinstance(nested, Mapping):
        data.update(nested)
    labels = data.get("labels") or ()
    if isinstance(labels, (str, int, float)):
        labels = [labels]
    elif not isinstance(labels, (list, tuple)):
        logger.warning("Ignoring labels of node %s: %r", node_id, labels)
        labels = ()
    return Node.create(
        node_id,
        record.get("type", ""),
        title=_extract_title(node_id, data),
        status=str(data.get("status") or ""),
        description=str(data.get("description") or ""),
        priority=_as_int(data.get("priority")),
        labels=labels,
        project=str(data.get("project") or ""),
        url=str(data.get("url") or ""),
        identifier=str(data.get("identifier") or ""),
        source=str(record.get("source") or source),
    )


def parse_snapshot(payload: Any, source: str = "file") -> GraphSnapshot:
    """Turn a decoded snapshot document into a :class:`GraphSnapshot`."""
    if not isinstance(payload, Mapping):
        raise SourceError("snapshot must be a mapping with 'nodes' and 'edges'")
    raw_nodes = payload.get("nodes") or []
    raw_edges = payload.get("edges") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise SourceError("'nodes' and 'edges' must be lists")

    nodes: List[Node] = []
    for record in raw_nodes:
        if not isinstance(record, Mapping) or not record.get("id"):
            logger.warning("Skipping node record without id: %r", record)
            continue
        nodes.append(node_from_record(record, source=source))

    edges: List[Edge] = []
    for record in raw_edges:
        if not isinstance(record, Mapping):
            logger.warning("Skipping malformed edge record: %r", record)
            continue
        from_id = record.get("from_id", record.get("from"))
        to_id = record.get("to_id", record.get("to"))
        if not from_id or not to_id:
            logger.warning("Skipping edge record without endpoints: %r", record)
            continue
        edges.append(Edge.create(str(from_id), str(to_id), record.get("relation")))

    return GraphSnapshot(nodes=tuple(nodes), edges=tuple(edges))


class SnapshotFileSource(DataSource):
    """Nodes and edges stored in a JSON or YAML document."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return f"file:{self.path.name}"

    def load(self) -> GraphSnapshot:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceError(f"cannot read snapshot {self.path}: {exc}") from exc
        try:
            if self.path.suffix.lower() == ".json":
                payload = json.loads(text)
            else:
                payload = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise SourceError(f"cannot parse snapshot {self.path}: {exc}") from exc
        return parse_snapshot(payload or {}, source="file")


# ----------------------------------------------------------------------
# Local git history
# ----------------------------------------------------------------------

_ISSUE_REF = re.compile(r"^#(\d+)")

# Seconds a single git call may run before the load gives up.
GIT_TIMEOUT = 30.0


def extract_issue_references(message: str) -> List[int]:
    """Issue numbers mentioned as ``#N`` in a commit message."""
    refs: List[int] = []
    for word in message.split():
        match = _ISSUE_REF.match(word.strip(".,;:!?()[]"))
        if match and int(match.group(1)) > 0:
            refs.append(int(match.group(1)))
    return refs


class GitScanner(DataSource):
    """Recent commits and branches of a local repository, via the git CLI."""

    def __init__(
        self, repo_path: Path, max_commits: int = MAX_COMMITS, timeout: float = GIT_TIMEOUT
    ):
        self.repo_path = Path(repo_path).resolve()
        self.max_commits = max_commits
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"git:{self.repo_path.name}"

    @property
    def project_id(self) -> str:
        return f"project:{self.repo_path.name}"

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                ["git", "-C", str(self.repo_path), *args],
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise SourceError(f"git {args[0]} timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise SourceError(f"git is not available: {exc}") from exc

    def load(self) -> GraphSnapshot:
        if self._git("rev-parse", "--git-dir").returncode != 0:
            raise SourceError(f"not a git repository: {self.repo_path}")

        nodes: List[Node] = [self._project_node()]
        edges: List[Edge] = []
        for loader in (self._load_commits, self._load_branches):
            more_nodes, more_edges = loader()
            nodes.extend(more_nodes)
            edges.extend(more_edges)
        return GraphSnapshot(nodes=tuple(nodes), edges=tuple(edges))

    def _project_node(self) -> Node:
        remote = self._git("remote", "get-url", "origin")
        return Node.create(
            self.project_id,
            NodeType.PROJECT,
            title=self.repo_path.name,
            status="active",
            description=f"Git repository at {self.repo_path}",
            url=remote.stdout.strip() if remote.returncode == 0 else "",
            source="git",
        )

    def _load_commits(self) -> Tuple[List[Node], List[Edge]]:
        result = self._git("log", f"--max-count={self.max_commits}", "--format=%H|%an|%aI|%s")
        if result.returncode != 0:
            logger.debug("git log failed in %s: %s", self.repo_path, result.stderr.strip())
            return [], []

        nodes: List[Node] = []
        edges: List[Edge] = []
        previous: Optional[str] = None
        for line in result.stdout.splitlines():
            parts = line.split("|", 3)
            if len(parts) < 4:
                continue
            commit_hash, author, date, message = parts
            commit_id = f"commit:{commit_hash[:8]}"
            nodes.append(
                Node.create(
                    commit_id,
                    NodeType.COMMIT,
                    title=message,
                    description=f"{author} on {date}",
                    identifier=commit_hash[:8],
                    project=self.repo_path.name,
                    source="git",
                )
            )
            edges.append(Edge(self.project_id, commit_id, Relation.OWNS))
            if previous is not None:
                edges.append(Edge(previous, commit_id, Relation.PARENT_OF))
            previous = commit_id
            for number in extract_issue_references(message):
                edges.append(Edge(commit_id, f"issue:{number}", Relation.MENTIONS))
        return nodes, edges

    def _load_branches(self) -> Tuple[List[Node], List[Edge]]:
        result = self._git("branch", "-a", "--format=%(refname:short)")
        if result.returncode != 0:
            logger.debug("git branch failed in %s: %s", self.repo_path, result.stderr.strip())
            return [], []

        nodes: List[Node] = []
        edges: List[Edge] = []
        for branch in result.stdout.splitlines():
            branch = branch.strip()
            if not branch or "HEAD" in branch:
                continue
            branch_id = f"service:branch:{sanitize_id(branch)}"
            nodes.append(
                Node.create(branch_id, NodeType.SERVICE, title=branch, labels=["branch"], source="git")
            )
            edges.append(Edge(self.project_id, branch_id, Relation.OWNS))
        return nodes, edges


# ----------------------------------------------------------------------
# Filesystem
# ----------------------------------------------------------------------

LANGUAGES: Dict[str, str] = {
    ".go": "Go", ".js": "JavaScript", ".ts": "TypeScript", ".tsx": "TypeScript",
    ".jsx": "JavaScript", ".py": "Python", ".rb": "Ruby", ".rs": "Rust",
    ".java": "Java", ".kt": "Kotlin", ".c": "C", ".cpp": "C++", ".h": "C",
    ".hpp": "C++", ".md": "Markdown", ".yaml": "YAML", ".yml": "YAML",
    ".json": "JSON", ".toml": "TOML", ".html": "HTML", ".css": "CSS", ".scss": "SCSS",
}

SKIP_DIRS = frozenset({
    "node_modules", "vendor", "dist", "build", "target", "__pycache__",
    "coverage", ".git", ".svn", ".hg", ".next", ".nuxt", ".cache",
})


class FileScanner(DataSource):
    """Source files under a directory, grouped by their parent directory.

    Files are owned by the project and by their directory's Service node,
    so a file inside a subdirectory is listed under both.
    """

    def __init__(
        self,
        root: Path,
        project_id: Optional[str] = None,
        max_files: int = MAX_FILES,
        include_project: bool = False,
    ):
        self.root = Path(root).resolve()
        self.project_id = project_id or f"project:{self.root.name}"
        self.max_files = max_files
        self.include_project = include_project

    @property
    def name(self) -> str:
        return f"files:{self.root.name}"

    def _walk(self) -> Iterable[Path]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(
                d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS
            )
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.suffix.lower() in LANGUAGES:
                    yield path

    def load(self) -> GraphSnapshot:
        if not self.root.is_dir():
            raise SourceError(f"not a directory: {self.root}")

        nodes: List[Node] = []
        edges: List[Edge] = []
        if self.include_project:
            nodes.append(
                Node.create(self.project_id, NodeType.PROJECT, title=self.root.name,
                            status="active", source="filesystem")
            )

        dirs: Dict[str, str] = {}
        for count, path in enumerate(self._walk()):
            if count >= self.max_files:
                break
            rel = path.relative_to(self.root).as_posix()
            file_id = f"file:{sanitize_id(rel)}"
            language = LANGUAGES[path.suffix.lower()]
            nodes.append(
                Node.create(
                    file_id,
                    NodeType.FILE,
                    title=rel,
                    description=f"{language} file, {_count_lines(path)} lines",
                    labels=[language],
                    source="filesystem",
                )
            )
            edges.append(Edge(self.project_id, file_id, Relation.OWNS))

            parent = Path(rel).parent.as_posix()
            if parent in (".", ""):
                continue
            if parent not in dirs:
                dir_id = f"service:dir:{sanitize_id(parent)}"
                dirs[parent] = dir_id
                nodes.append(
                    Node.create(dir_id, NodeType.SERVICE, title=Path(parent).name,
                                description=parent, labels=["directory"], source="filesystem")
                )
                edges.append(Edge(self.project_id, dir_id, Relation.OWNS))
            edges.append(Edge(dirs[parent], file_id, Relation.OWNS))

        return GraphSnapshot(nodes=tuple(nodes), edges=tuple(edges))


def _count_lines(path: Path) -> int:
    try:
        return path.read_text(encoding="utf-8", errors="replace").count("\n") + 1
    except OSError:
        return 0


# ----------------------------------------------------------------------
# Loader
# ----------------------------------------------------------------------

SOURCE_KINDS: Dict[str, str] = {
    "mock": "Built-in demo graph",
    "file": "JSON or YAML snapshot file (--path)",
    "git": "Commits and branches of a local git repository (--path)",
    "files": "Source files under a directory (--path)",
}


class Loader:
    """Load every configured source and merge the results."""

    def __init__(self, sources: Sequence[DataSource]):
        self.sources = list(sources)

    def load_all(self) -> Tuple[GraphSnapshot, Tuple[str, ...]]:
        """Return the merged snapshot and one message per failed source.

        A failing source is logged and skipped; the others still load.
        """
        snapshot = GraphSnapshot()
        errors: List[str] = []
        for source in self.sources:
            try:
                loaded = source.load()
            except SourceError as exc:
                logger.warning("Error loading from %s: %s", source.name, exc)
                errors.append(f"{source.name}: {exc}")
                continue
            logger.info(
                "Loaded %d nodes, %d edges from %s",
                len(loaded.nodes), len(loaded.edges), source.name,
            )
            snapshot = snapshot.merged(loaded)
        return snapshot, tuple(errors)


def build_sources(
    kinds: Sequence[str],
    path: Optional[Path] = None,
    max_commits: int = MAX_COMMITS,
    max_files: int = MAX_FILES,
) -> List[DataSource]:
    """Instantiate sources by kind name.

    Raises:
        ValueError: for an unknown kind, or when ``file`` has no path.
    """
    root = Path(path) if path is not None else Path.cwd()
    kinds = list(dict.fromkeys(kinds))
    sources: List[DataSource] = []
    for kind in kinds:
        if kind == "mock":
            sources.append(MockSource())
        elif kind == "file":
            if path is None:
                raise ValueError("the 'file' source needs --path pointing at a snapshot")
            sources.append(SnapshotFileSource(root))
        elif kind == "git":
            sources.append(GitScanner(root, max_commits=max_commits))
        elif kind == "files":
            sources.append(
                FileScanner(root, max_files=max_files, include_project="git" not in kinds)
            )
        else:
            raise ValueError(f"Unknown source '{kind}'. Choose from: {', '.join(SOURCE_KINDS)}")
    return sources
