"""
Canonical 16-player draw.

Round-1 slot i holds CANONICAL_PAIRS[i]; slots (0,1), (2,3), (4,5), (6,7)
feed quarterfinals 0, 1, 2, 3.
"""
from typing import Dict, List, Optional, Tuple

DRAW_SIZE = 16

CANONICAL_PAIRS: List[Tuple[int, int]] = [
    (1, 16),
    (8, 9),
    (5, 12),
    (4, 13),
    (3, 14),
    (6, 11),
    (7, 10),
    (2, 15),
]


def canonical_pairs() -> List[Tuple[int, int]]:
    return list(CANONICAL_PAIRS)


def pair_key(seed_a: int, seed_b: int) -> Tuple[int, int]:
    return (min(seed_a, seed_b), max(seed_a, seed_b))


_SLOT_BY_KEY: Dict[Tuple[int, int], int] = {pair_key(a, b): i for i, (a, b) in enumerate(CANONICAL_PAIRS)}


def slot_for_seeds(seed_a: int, seed_b: int) -> Optional[int]:
    """Round-1 slot index for a seed pairing, or None if the pairing is not canonical."""
    return _SLOT_BY_KEY.get(pair_key(seed_a, seed_b))


def quarterfinal_index(slot_index: int) -> int:
    return slot_index // 2
