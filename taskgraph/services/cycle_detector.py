"""Reachability and ordering over a project's dependency edges.

All functions are pure: they take ``(predecessor, successor)`` pairs and never
mutate them. A candidate edge ``P -> S`` closes a cycle exactly when ``P`` is
already reachable from ``S``, so the check runs against the graph as it is,
without ever adding the candidate.
"""
from collections import deque
from typing import Iterable, Optional

Edge = tuple[str, str]


def build_adjacency(edges: Iterable[Edge]) -> dict[str, list[str]]:
    """Map each predecessor to its successors, preserving edge order."""
    adj: dict[str, list[str]] = {}
    for src, dst in edges:
        adj.setdefault(src, []).append(dst)
    return adj


def find_path(
    adjacency: dict[str, list[str]], start: str, target: str
) -> Optional[list[str]]:
    """Breadth-first search along outgoing edges.

    Returns the node path ``[start, ..., target]`` or None when ``target`` is
    unreachable. The visited set bounds the walk even on malformed input that
    already contains a cycle.
    """
    if start == target:
        return [start]

    parents: dict[str, Optional[str]] = {start: None}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for neighbor in adjacency.get(node, []):
            if neighbor in parents:
                continue
            parents[neighbor] = node
            if neighbor == target:
                path = [neighbor]
                step = node
                while step is not None:
                    path.append(step)
                    step = parents[step]
                path.reverse()
                return path
            queue.append(neighbor)
    return None


def would_create_cycle(
    edges: Iterable[Edge], predecessor: str, successor: str
) -> Optional[list[str]]:
    """Return the path ``successor -> ... -> predecessor`` if adding
    ``predecessor -> successor`` would close a loop, else None.

    Self-loops are rejected by the caller before reaching here.
    """
    adjacency = build_adjacency(edges)
    if not adjacency:
        return None
    return find_path(adjacency, successor, predecessor)


def topological_order(nodes: Iterable[str], edges: Iterable[Edge]) -> list[str]:
    """Kahn's algorithm. Nodes on a cycle (if any) are left out of the result."""
    node_list = list(nodes)
    in_degree = {n: 0 for n in node_list}
    adj: dict[str, list[str]] = {n: [] for n in node_list}
    for src, dst in edges:
        adj.setdefault(src, []).append(dst)
        in_degree.setdefault(src, 0)
        in_degree[dst] = in_degree.get(dst, 0) + 1
        if src not in node_list:
            node_list.append(src)
        if dst not in node_list:
            node_list.append(dst)

    queue = deque(n for n in node_list if in_degree[n] == 0)
    ordered: list[str] = []
    while queue:
        node = queue.popleft()
        ordered.append(node)
        for neighbor in adj.get(node, []):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)
    return ordered


def has_cycle(edges: Iterable[Edge]) -> bool:
    """True if the edge set, as a directed graph, contains a cycle."""
    edge_list = list(edges)
    nodes: dict[str, None] = {}
    for src, dst in edge_list:
        nodes.setdefault(src)
        nodes.setdefault(dst)
    return len(topological_order(nodes, edge_list)) < len(nodes)
