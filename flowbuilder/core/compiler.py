"""Checkpoint compilation.

Turns the visual graph into the ordered, dependency-chained checkpoint
list of the exported flow:

1. Each area's members (geometric containment) form one group; actions
   inside no area form the implicit ``default`` group.
2. Empty groups are discarded.
3. Named groups come first in ascending name order, ``default`` last.
4. Actions keep their vertical order (then horizontal, then creation).
5. Checkpoint k depends exactly on checkpoint k-1.

Edges, including conditional ``true``/``false`` branches, do not affect
the compiled order: the chain is always linear.
"""

from typing import Any, Sequence

from .constants import DEFAULT_GROUP_NAME
from .containment import area_order, assign_members, membership_map
from .model import Checkpoint, Edge, Node


def action_to_dict(node: Node) -> dict[str, Any]:
    """Flatten an action node into ``{type, description, **config}``."""
    action: dict[str, Any] = {
        "type": node.action_type,
        "description": node.description,
    }
    action.update(node.config)
    return action


def order_actions(actions: Sequence[Node], creation_index: dict[str, int]) -> list[Node]:
    """Sort actions top-to-bottom, then left-to-right, then by creation."""
    return sorted(
        actions,
        key=lambda n: (n.position.y, n.position.x, creation_index[n.id]),
    )


def group_actions(nodes: Sequence[Node]) -> list[tuple[str, list[Node]]]:
    """Group action nodes into (name, ordered actions) in checkpoint order.

    Empty groups are left out; ``default`` collects every action that no
    area claims and always comes last.
    """
    creation_index = {n.id: i for i, n in enumerate(nodes)}
    by_id = {n.id: n for n in nodes}
    membership = assign_members(nodes)

    groups: list[tuple[str, list[Node]]] = []
    claimed: set[str] = set()
    for area in area_order(n for n in nodes if n.is_area):
        members = [by_id[m] for m in membership[area.id]]
        claimed.update(membership[area.id])
        if members:
            groups.append((area.name, order_actions(members, creation_index)))

    leftovers = [n for n in nodes if n.is_action and n.id not in claimed]
    if leftovers:
        groups.append((DEFAULT_GROUP_NAME, order_actions(leftovers, creation_index)))

    return groups


def compile_checkpoints(nodes: Sequence[Node], edges: Sequence[Edge] = ()) -> list[Checkpoint]:
    """Compile the current graph into an ordered checkpoint list.

    Args:
        nodes: All graph nodes, in creation order
        edges: Graph edges (accepted for interface symmetry; branching
            edges never change the compiled order)

    Returns:
        Checkpoints ``step-1..step-N``, each depending on its predecessor
    """
    checkpoints: list[Checkpoint] = []

    for i, (name, actions) in enumerate(group_actions(nodes)):
        checkpoint_id = f"step-{i + 1}"
        dependencies = [checkpoints[-1].id] if checkpoints else []
        checkpoints.append(
            Checkpoint(
                id=checkpoint_id,
                name=name,
                dependencies=dependencies,
                actions=[action_to_dict(a) for a in actions],
                description=f"{name}: {len(actions)} action(s)",
            )
        )

    return checkpoints


def checkpoint_groups(nodes: Sequence[Node]) -> dict[str, str]:
    """Informational map of action id to owning area id."""
    return membership_map(nodes)
