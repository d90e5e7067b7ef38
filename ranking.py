import heapq
from typing import Any, List, Mapping, Tuple


def rank_key(item: Tuple[Any, int]):
    key, count = item
    return -count, str(key)


def top_n(table: Mapping[Any, int], n: int) -> List[Tuple[Any, int]]:
    """
    Return up to ``n`` (key, count) pairs, highest count first.

    Equal counts are ordered by the ascending string form of the key so the
    same table always ranks the same way.
    """
    if n <= 0:
        return []
    return heapq.nsmallest(n, table.items(), key=rank_key)
