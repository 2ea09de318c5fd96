"""
Category tree construction.

Categories reference their parent through parent_id and nothing stops a
chain from looping back on itself, so the tree is built in two passes
(group children by parent, then walk from the roots) with a visited set.
"""

from collections import defaultdict
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

from .errors import ValidationFailed

DEFAULT_MAX_DEPTH = 32


def build_category_tree(
    categories: Sequence[Mapping[str, Any]],
    max_depth: int = DEFAULT_MAX_DEPTH
) -> List[Dict[str, Any]]:
    """
    Turn a flat list of category views into nested nodes.

    Each node is a copy of the category dict with a 'children' list.
    A category whose parent is not in the input becomes a root. Members of
    a parent cycle have no root above them; the first one met (in input
    order) is promoted to a root so every category appears exactly once.

    Raises:
        ValidationFailed: nesting deeper than max_depth
    """
    by_id = {cat['id']: cat for cat in categories}
    children_of = defaultdict(list)
    roots = []
    for cat in categories:
        parent_id = cat.get('parent_id')
        if parent_id and parent_id in by_id and parent_id != cat['id']:
            children_of[parent_id].append(cat)
        else:
            roots.append(cat)

    visited = set()

    def walk(cat, depth):
        if depth > max_depth:
            raise ValidationFailed(f"Category nesting exceeds {max_depth} levels at '{cat['id']}'")
        visited.add(cat['id'])
        node = dict(cat)
        node['children'] = [
            walk(child, depth + 1)
            for child in children_of.get(cat['id'], [])
            if child['id'] not in visited
        ]
        return node

    tree = [walk(cat, 1) for cat in roots]

    # Whatever is left is only reachable through a cycle
    for cat in categories:
        if cat['id'] not in visited:
            tree.append(walk(cat, 1))

    return tree


def flatten_tree(nodes: Sequence[Mapping[str, Any]], depth: int = 0) -> Iterator[Tuple[int, Mapping[str, Any]]]:
    """Yield (depth, node) pairs in display order."""
    for node in nodes:
        yield depth, node
        yield from flatten_tree(node.get('children', []), depth + 1)
