"""
Exact-match grouping for the wall view.

Groups items by an extracted key and emits every unordered pair within
each group. No scoring and no statistics; this sits outside the engine
core.
"""

import logging
from itertools import combinations
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple, TypeVar

from ..dictionary import CodeDictionary
from ..encoding import FeatureTable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def group_pairs(
    items: Iterable[T],
    key_fn: Callable[[T], Optional[Hashable]],
    id_fn: Callable[[T], str]
) -> List[Tuple[Hashable, str, str]]:
    """
    Group items by key and emit all pairs within each group.

    Items whose key is None are not grouped. Groups appear in order of
    first appearance; pairs within a group are sorted by id.

    Args:
        items: Items to group
        key_fn: Key extraction function
        id_fn: Identifier extraction function

    Returns:
        List of (group_key, id_a, id_b) with id_a < id_b
    """
    groups: Dict[Hashable, List[str]] = {}
    for item in items:
        key = key_fn(item)
        if key is None:
            continue
        groups.setdefault(key, []).append(id_fn(item))

    pairs = []
    for key, ids in groups.items():
        for id_a, id_b in combinations(sorted(set(ids)), 2):
            pairs.append((key, id_a, id_b))
    return pairs


def build_wall_connections(
    table: FeatureTable,
    dictionary: CodeDictionary,
    group_keys: List[str],
    variable_for_field: Dict[str, str]
) -> List[Dict[str, Any]]:
    """
    Build wall connection rows for each configured categorical field.

    Args:
        table: Encoded feature table
        dictionary: Dictionary used to label groups
        group_keys: Categorical fields to group on
        variable_for_field: Categorical field -> dictionary variable key

    Returns:
        Rows with key, label, uid_a, uid_b
    """
    rows = []
    for field_name in group_keys:
        variable = variable_for_field[field_name]
        pairs = group_pairs(table.rows, lambda r: r.code(field_name), lambda r: r.uid)
        for code, uid_a, uid_b in pairs:
            rows.append({
                "key": field_name,
                "label": dictionary.decode(variable, code),
                "uid_a": uid_a,
                "uid_b": uid_b
            })
        logger.info(f"Wall connections on '{field_name}': {len(pairs)} pairs")
    return rows
