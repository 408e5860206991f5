"""
Cycle detection over a dependency adjacency map.

The traversal is a pure function of its input: it reads the adjacency map,
never mutates it, and never breaks a cycle. It is iterative so long
dependency chains cannot exhaust the interpreter's recursion limit.
"""

from __future__ import annotations

from typing import Iterable, Mapping

WHITE, GRAY, BLACK = 0, 1, 2


def normalize_cycle(cycle: list[str]) -> tuple[str, ...]:
    """Rotate a cycle so it starts at its smallest id."""
    start = cycle.index(min(cycle))
    return tuple(cycle[start:] + cycle[:start])


def find_cycles(
    adjacency: Mapping[str, Iterable[str]],
    roots: Iterable[str] | None = None,
) -> list[list[str]]:
    """
    Find dependency cycles with a depth-first traversal.

    A back-edge to a node still on the traversal stack closes a cycle; the
    ids on the stack from that node onwards form it. Cycles are normalized
    (rotated to start at their smallest id) and reported once each, so the
    result does not depend on where traversal starts.

    Args:
        adjacency: Node -> successors. Successors missing from the map are
            treated as leaves.
        roots: Optional traversal start order; remaining nodes follow in
            sorted order.

    Returns:
        Cycles as ordered id lists, sorted
    """
    color: dict[str, int] = {}
    found: set[tuple[str, ...]] = set()

    order = list(roots or [])
    order.extend(sorted(adjacency))

    for root in order:
        if color.get(root, WHITE) != WHITE:
            continue

        path: list[str] = [root]
        on_path: dict[str, int] = {root: 0}
        iterators = [iter(sorted(adjacency.get(root, ())))]
        color[root] = GRAY

        while iterators:
            node = path[-1]
            successor = next(iterators[-1], None)

            if successor is None:
                color[node] = BLACK
                iterators.pop()
                path.pop()
                del on_path[node]
                continue

            state = color.get(successor, WHITE)
            if state == GRAY and successor in on_path:
                found.add(normalize_cycle(path[on_path[successor]:]))
            elif state == WHITE:
                color[successor] = GRAY
                on_path[successor] = len(path)
                path.append(successor)
                iterators.append(iter(sorted(adjacency.get(successor, ()))))

    return [list(cycle) for cycle in sorted(found)]
