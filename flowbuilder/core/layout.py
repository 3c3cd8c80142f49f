"""Two-level layered auto-layout.

The layered (Sugiyama-style) algorithm is implemented once and invoked
twice with different node subsets:

  1. Inner phase: the action members of each checkpoint area, laid out
     with tight spacing in the area's local frame.
  2. Outer phase: areas and the two terminal nodes, with edges lifted
     from members to their area and routed through unassigned actions.

Unassigned actions go to an overflow grid right of the laid-out graph.
Layout changes positions and area sizes only; edges are never touched.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

import networkx as nx
import numpy as np

from .constants import (
    AREA_HEADER_HEIGHT,
    AREA_LAYOUT_MIN_H,
    AREA_LAYOUT_MIN_W,
    AREA_PADDING,
    CROSSING_PASSES_MAX,
    INNER_LAYOUT,
    NODE_FOOTPRINT_H,
    NODE_FOOTPRINT_W,
    OUTER_LAYOUT,
    OVERFLOW_COLUMNS,
    OVERFLOW_GAP,
    TERMINAL_H,
    TERMINAL_W,
    LayoutOptions,
)
from .containment import area_order, assign_members
from .logging import get_logger
from .model import Edge, GraphState, Node, Position, Size
from .sizing import required_bounds

DUMMY_PREFIX = "__dummy_"

ACTION_SIZE = Size(NODE_FOOTPRINT_W, NODE_FOOTPRINT_H)
TERMINAL_SIZE = Size(TERMINAL_W, TERMINAL_H)


# ─── Layered algorithm ────────────────────────────────────────────────────────


def build_layer_graph(
    node_ids: Sequence[str],
    edges: Iterable[tuple[str, str]],
) -> nx.DiGraph:
    """Build the layering graph; self-loops and foreign endpoints are dropped."""
    graph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    for src, tgt in edges:
        if src != tgt and src in graph and tgt in graph:
            graph.add_edge(src, tgt)
    return graph


def greedy_fas_ordering(graph: nx.DiGraph, index: Mapping[str, int]) -> list[str]:
    """Order nodes so that few edges point backwards (Eades-Lin-Smyth).

    Sinks are peeled to the back, sources to the front; when only cycles
    remain the node with the largest out-in surplus goes to the front.
    Ties are resolved by ``index`` so the result is deterministic.
    """
    active = sorted(graph.nodes, key=index.__getitem__)
    out_deg = {n: graph.out_degree(n) for n in active}
    in_deg = {n: graph.in_degree(n) for n in active}
    front: list[str] = []
    back: list[str] = []

    def remove(node: str) -> None:
        active.remove(node)
        for succ in graph.successors(node):
            in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            out_deg[pred] -= 1

    while active:
        changed = True
        while changed:
            changed = False
            for node in [n for n in active if out_deg[n] == 0]:
                remove(node)
                back.append(node)
                changed = True
            for node in [n for n in active if in_deg[n] == 0]:
                remove(node)
                front.append(node)
                changed = True

        if active:
            best = max(active, key=lambda n: (out_deg[n] - in_deg[n], -index[n]))
            remove(best)
            front.append(best)

    back.reverse()
    return front + back


def remove_cycles(graph: nx.DiGraph, index: Mapping[str, int]) -> nx.DiGraph:
    """Return an acyclic copy of ``graph`` with back edges reversed."""
    ordering = greedy_fas_ordering(graph, index)
    rank = {node: pos for pos, node in enumerate(ordering)}

    dag = nx.DiGraph()
    dag.add_nodes_from(graph.nodes)
    for src, tgt in graph.edges:
        if rank[src] > rank[tgt]:
            dag.add_edge(tgt, src)
        else:
            dag.add_edge(src, tgt)
    return dag


def assign_ranks(dag: nx.DiGraph, index: Mapping[str, int]) -> dict[str, int]:
    """Longest-path ranking: every edge goes at least one rank down."""
    ranks: dict[str, int] = {}
    for node in nx.lexicographical_topological_sort(dag, key=index.__getitem__):
        preds = [ranks[p] + 1 for p in dag.predecessors(node)]
        ranks[node] = max(preds, default=0)
    return ranks


def insert_dummies(
    dag: nx.DiGraph,
    ranks: dict[str, int],
    index: dict[str, int],
) -> nx.DiGraph:
    """Split edges spanning several ranks with one dummy per rank.

    ``ranks`` and ``index`` are extended with the dummy nodes.
    """
    proper = nx.DiGraph()
    proper.add_nodes_from(dag.nodes)
    counter = 0

    for src, tgt in sorted(dag.edges, key=lambda e: (index[e[0]], index[e[1]])):
        span = ranks[tgt] - ranks[src]
        prev = src
        for step in range(1, span):
            dummy = f"{DUMMY_PREFIX}{counter}_{step}"
            ranks[dummy] = ranks[src] + step
            index[dummy] = len(index)
            proper.add_edge(prev, dummy)
            prev = dummy
        proper.add_edge(prev, tgt)
        counter += 1

    return proper


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive ranks."""
    total = 0
    for rank_idx in range(len(ordering) - 1):
        tgt_pos = {nid: i for i, nid in enumerate(ordering[rank_idx + 1])}
        segments = [
            (sp, tgt_pos[succ])
            for sp, src in enumerate(ordering[rank_idx])
            for succ in graph.successors(src)
            if succ in tgt_pos
        ]
        for i in range(len(segments)):
            for j in range(i + 1, len(segments)):
                (a0, a1), (b0, b1) = segments[i], segments[j]
                if (a0 - b0) * (a1 - b1) < 0:
                    total += 1
    return total


def _barycenter(
    node: str,
    neighbors: Iterable[str],
    neighbor_pos: Mapping[str, int],
    current: int,
) -> float:
    """Mean position of ``node``'s neighbours; nodes without any keep ``current``."""
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return float(current)
    return float(np.mean(positions))


def minimise_crossings(
    graph: nx.DiGraph,
    ranks: Mapping[str, int],
    index: Mapping[str, int],
) -> list[list[str]]:
    """Order each rank with alternating barycenter sweeps.

    Sweeps stop as soon as a full down+up pass fails to reduce the
    crossing count; the best ordering seen is returned.
    """
    rank_count = max(ranks.values(), default=-1) + 1
    ordering: list[list[str]] = [[] for _ in range(rank_count)]
    for node in sorted(ranks, key=index.__getitem__):
        ordering[ranks[node]].append(node)

    best = [list(layer) for layer in ordering]
    best_crossings = count_crossings(ordering, graph)

    for _ in range(CROSSING_PASSES_MAX):
        if best_crossings == 0:
            break

        for r in range(1, rank_count):
            prev = {nid: i for i, nid in enumerate(ordering[r - 1])}
            ordering[r] = [
                node for _, _, node in sorted(
                    (_barycenter(n, graph.predecessors(n), prev, i), i, n)
                    for i, n in enumerate(ordering[r])
                )
            ]
        for r in range(rank_count - 2, -1, -1):
            nxt = {nid: i for i, nid in enumerate(ordering[r + 1])}
            ordering[r] = [
                node for _, _, node in sorted(
                    (_barycenter(n, graph.successors(n), nxt, i), i, n)
                    for i, n in enumerate(ordering[r])
                )
            ]

        crossings = count_crossings(ordering, graph)
        if crossings >= best_crossings:
            break
        best = [list(layer) for layer in ordering]
        best_crossings = crossings

    return best


def assign_coordinates(
    ordering: list[list[str]],
    sizes: Mapping[str, Size],
    options: LayoutOptions,
) -> dict[str, Position]:
    """Place ranks top-to-bottom and centre each rank on a common axis.

    Dummy nodes take no width but still consume ``node_sep``.
    """
    def size_of(node: str) -> Size:
        if node.startswith(DUMMY_PREFIX):
            return Size(0.0, 0.0)
        return sizes.get(node, ACTION_SIZE)

    rank_heights = np.array(
        [max((size_of(n).height for n in layer), default=0.0) for layer in ordering]
    )
    rank_tops = np.concatenate(([0.0], np.cumsum(rank_heights + options.rank_sep)[:-1]))

    rank_widths = [
        sum(size_of(n).width for n in layer) + options.node_sep * max(len(layer) - 1, 0)
        for layer in ordering
    ]
    axis = max(rank_widths, default=0.0) / 2

    positions: dict[str, Position] = {}
    for layer, top, width, height in zip(ordering, rank_tops, rank_widths, rank_heights):
        x = axis - width / 2
        for node in layer:
            size = size_of(node)
            # Vertically centre smaller nodes within the rank row
            y = float(top) + (float(height) - size.height) / 2
            positions[node] = Position(float(x), y)
            x += size.width + options.node_sep

    return positions


def layered_layout(
    node_ids: Sequence[str],
    edges: Iterable[tuple[str, str]],
    sizes: Mapping[str, Size],
    options: LayoutOptions = OUTER_LAYOUT,
) -> dict[str, Position]:
    """Arrange a directed graph in ranks, top to bottom.

    Args:
        node_ids: Nodes to place; their order breaks every tie
        edges: (source, target) pairs; pairs with foreign endpoints are ignored
        sizes: Footprint per node (actions default to the node footprint)
        options: Node and rank separation

    Returns:
        Top-left position of every node, relative to (0, 0)
    """
    if not node_ids:
        return {}

    index = {node: i for i, node in enumerate(node_ids)}
    graph = build_layer_graph(node_ids, edges)
    dag = remove_cycles(graph, index)
    ranks = assign_ranks(dag, index)
    proper = insert_dummies(dag, ranks, index)
    ordering = minimise_crossings(proper, ranks, index)
    positions = assign_coordinates(ordering, sizes, options)

    return {node: positions[node] for node in node_ids}


# ─── Two-phase composition ────────────────────────────────────────────────────


@dataclass
class _InnerLayout:
    """Inner arrangement of one area, relative to the area origin."""

    offsets: dict[str, Position]
    size: Size


def _layout_area(area: Node, members: list[Node], edges: Sequence[Edge]) -> _InnerLayout:
    """Lay out an area's members in its local frame and size the area."""
    member_ids = [m.id for m in members]
    member_set = set(member_ids)
    sub_edges = [
        (e.source, e.target) for e in edges
        if e.source in member_set and e.target in member_set
    ]
    relative = layered_layout(
        member_ids, sub_edges, {m: ACTION_SIZE for m in member_ids}, INNER_LAYOUT
    )
    offsets = {
        node_id: pos.offset(AREA_PADDING, AREA_HEADER_HEIGHT + AREA_PADDING)
        for node_id, pos in relative.items()
    }

    # Size against a copy anchored at the origin, members in local coordinates
    local_area = area.copy()
    local_area.position = Position(0.0, 0.0)
    local_members = []
    for member in members:
        local = member.copy()
        local.position = offsets[member.id]
        local_members.append(local)

    size = required_bounds(local_area, local_members, AREA_LAYOUT_MIN_W, AREA_LAYOUT_MIN_H)
    return _InnerLayout(offsets=offsets, size=size)


def lift_edges(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    representative: Mapping[str, Optional[str]],
) -> list[tuple[str, str]]:
    """Project edges onto outer nodes.

    Each endpoint is replaced by its representative (a terminal, or the
    area owning an action). Paths through actions without a
    representative are contracted, so ``A -> x -> B`` with ``x``
    unassigned yields ``A -> B``. Edges inside one outer node vanish.
    """
    successors: dict[str, list[str]] = {n.id: [] for n in nodes}
    for edge in edges:
        if edge.source in successors and edge.target in successors:
            successors[edge.source].append(edge.target)

    lifted: list[tuple[str, str]] = []
    seen_pairs: set[tuple[str, str]] = set()

    for outer in dict.fromkeys(r for r in representative.values() if r is not None):
        frontier = [n.id for n in nodes if representative.get(n.id) == outer]
        visited = set(frontier)
        while frontier:
            current = frontier.pop(0)
            for target in successors[current]:
                rep = representative.get(target)
                if rep is None:
                    if target not in visited:
                        visited.add(target)
                        frontier.append(target)
                elif rep != outer and (outer, rep) not in seen_pairs:
                    seen_pairs.add((outer, rep))
                    lifted.append((outer, rep))

    return lifted


def run_layout(state: GraphState) -> list[Node]:
    """Compute a full replacement node list with arranged positions.

    Membership is taken once from the current geometry. Each area's
    inner arrangement is computed first so the outer phase separates
    areas by their final size; then areas and terminals are ranked,
    members are translated into their area, and unassigned actions are
    placed in a grid right of the graph, in creation order.

    Args:
        state: Current graph (not modified)

    Returns:
        New node list in the original order
    """
    logger = get_logger()
    nodes = [n.copy() for n in state.nodes]
    if not nodes:
        return nodes

    by_id = {n.id: n for n in nodes}
    membership = assign_members(nodes)

    origin_x = min(n.position.x for n in nodes)
    origin_y = min(n.position.y for n in nodes)

    inner: dict[str, _InnerLayout] = {}
    for area in area_order(n for n in nodes if n.is_area):
        members = [by_id[m] for m in membership[area.id]]
        inner[area.id] = _layout_area(area, members, state.edges)

    representative: dict[str, Optional[str]] = {}
    for node in nodes:
        if node.is_terminal or node.is_area:
            representative[node.id] = node.id
        else:
            representative[node.id] = None
    for area_id, members in membership.items():
        for member_id in members:
            representative[member_id] = area_id

    outer_ids = [n.id for n in nodes if n.is_terminal or n.is_area]
    outer_sizes = {
        node_id: inner[node_id].size if node_id in inner else TERMINAL_SIZE
        for node_id in outer_ids
    }
    outer_positions = layered_layout(
        outer_ids, lift_edges(nodes, state.edges, representative), outer_sizes, OUTER_LAYOUT
    )

    right_edge = origin_x
    for node_id, pos in outer_positions.items():
        node = by_id[node_id]
        node.position = pos.offset(origin_x, origin_y)
        right_edge = max(right_edge, node.position.x + outer_sizes[node_id].width)

        if node_id in inner:
            layout = inner[node_id]
            node.width = layout.size.width
            node.height = layout.size.height
            node.action_count = len(layout.offsets)
            for member_id, offset in layout.offsets.items():
                by_id[member_id].position = node.position.offset(offset.x, offset.y)

    overflow = [n for n in nodes if n.is_action and representative[n.id] is None]
    for i, node in enumerate(overflow):
        col, row = i % OVERFLOW_COLUMNS, i // OVERFLOW_COLUMNS
        node.position = Position(
            right_edge + OVERFLOW_GAP + col * (NODE_FOOTPRINT_W + INNER_LAYOUT.node_sep),
            origin_y + row * (NODE_FOOTPRINT_H + INNER_LAYOUT.rank_sep),
        )

    logger.layout_result(len(inner), len(nodes) - len(overflow), len(overflow))
    return nodes
