"""Pytest configuration and fixtures for kgraph CLI tests."""

from pathlib import Path
from typing import List

import pytest

from kgraph_cli.models import Edge, GraphSnapshot, Node


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Point config and logs at a temporary directory so tests never touch ~/.kgraph."""
    home = tmp_path / "kgraph-home"
    monkeypatch.setattr("kgraph_cli.config.BASE_DIR", home)
    monkeypatch.setattr("kgraph_cli.config.LOG_FILE", home / "kgraph.log")
    return home


def make_node(node_id: str, node_type: str, title: str = "", status: str = "", **kwargs) -> Node:
    return Node.create(node_id, node_type, title=title or node_id, status=status, **kwargs)


@pytest.fixture
def chain_snapshot() -> GraphSnapshot:
    """Project A owns issue B, which owns PR C."""
    nodes = (
        make_node("A", "Project", "Alpha"),
        make_node("B", "Issue", "Bug in parser", "In Progress"),
        make_node("C", "PR", "Fix parser", "Open"),
    )
    edges = (
        Edge.create("A", "B", "owns"),
        Edge.create("B", "C", "owns"),
    )
    return GraphSnapshot(nodes=nodes, edges=edges)


@pytest.fixture
def mixed_status_snapshot(chain_snapshot: GraphSnapshot) -> GraphSnapshot:
    """Chain snapshot plus a completed issue D under A."""
    extra = make_node("D", "Issue", "Write changelog", "Done")
    return GraphSnapshot(
        nodes=chain_snapshot.nodes + (extra,),
        edges=chain_snapshot.edges + (Edge.create("A", "D", "owns"),),
    )


@pytest.fixture
def wide_snapshot() -> GraphSnapshot:
    """One project owning 40 issues, enough to force scrolling."""
    nodes: List[Node] = [make_node("P", "Project", "Big project")]
    edges: List[Edge] = []
    for i in range(40):
        issue_id = f"I{i:02d}"
        nodes.append(make_node(issue_id, "Issue", f"Issue {i:02d}", "Todo"))
        edges.append(Edge.create("P", issue_id, "owns"))
    return GraphSnapshot(nodes=tuple(nodes), edges=tuple(edges))


@pytest.fixture
def long_description_snapshot() -> GraphSnapshot:
    """Project P owning issue L whose description runs past one screen."""
    description = "\n".join(f"Step {i:02d} of the reproduction." for i in range(60))
    nodes = (
        make_node("P", "Project", "Payments"),
        make_node("L", "Issue", "Long report", "Todo", description=description),
    )
    return GraphSnapshot(nodes=nodes, edges=(Edge.create("P", "L", "owns"),))
