"""
Match Index - Approximate bale lookup by identifier.

Operators type partial or mistyped bale tags, and scanners add stray
characters, so lookup has to tolerate case, punctuation and small typos.

Identifiers are normalized the same way product barcodes are: everything
except letters and digits is dropped and the rest lower-cased. Similarity is
measured with ``difflib.SequenceMatcher`` against the whole identifier and
against every identifier window as long as the query, so a partial tag
("2315") still finds the full one ("BL-23150").

Ranking: raw exact matches first, then by distance (0 = identical after
normalization), then by position in the collection.
"""
from difflib import SequenceMatcher
from typing import Any, List, Optional, Sequence

from bale_models import BaleRecord
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 0.3


def normalize_identifier(value: Any) -> str:
    """
    Normalize an identifier for comparison.

    Examples:
        "BL-2315 A" -> "bl2315a"
        12345 -> "12345"
    """
    return ''.join(filter(str.isalnum, str(value))).lower()


def match_distance(query: str, candidate: str) -> float:
    """
    Distance between two normalized strings, 0.0 (same) to 1.0 (unrelated).

    The best of the whole-string ratio and the best same-length window ratio
    is used.
    """
    if not query or not candidate:
        return 1.0
    if query == candidate:
        return 0.0

    matcher = SequenceMatcher(None, query, candidate, autojunk=False)
    best = matcher.ratio()

    width = len(query)
    if len(candidate) > width:
        for start in range(len(candidate) - width + 1):
            window = candidate[start:start + width]
            if window == query:
                return 0.0
            matcher.set_seq2(window)
            # quick_ratio is an upper bound; skip windows that cannot win
            if matcher.quick_ratio() <= best:
                continue
            best = max(best, matcher.ratio())

    return 1.0 - best


class MatchIndex:
    """
    Ranked approximate search over a bale collection.

    Attributes:
        threshold (float): Maximum distance for inclusion; 0 accepts only
                           identifiers equal after normalization, higher
                           values accept looser matches
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        self.threshold = threshold

    def search(self, query: str, bales: Sequence[BaleRecord], limit: Optional[int] = None) -> List[BaleRecord]:
        """
        Return bales whose id approximately matches the query, best first.

        An empty query (or one with no letters/digits) returns no bales.
        """
        raw_query = (query or '').strip()
        normalized_query = normalize_identifier(raw_query)
        if not normalized_query:
            return []

        scored = []
        for position, bale in enumerate(bales):
            distance = match_distance(normalized_query, normalize_identifier(bale.id))
            if distance <= self.threshold:
                exact_rank = 0 if bale.id == raw_query else 1
                scored.append((exact_rank, distance, position, bale))

        scored.sort(key=lambda item: item[:3])
        results = [item[3] for item in scored]

        logger.debug(f"Search '{raw_query}': {len(results)} of {len(bales)} bales matched")

        if limit is not None:
            return results[:limit]
        return results

    @staticmethod
    def find_exact(identifier: str, bales: Sequence[BaleRecord]) -> Optional[BaleRecord]:
        """Return the first bale whose id equals the identifier exactly, or None."""
        for bale in bales:
            if bale.id == identifier:
                return bale
        return None
