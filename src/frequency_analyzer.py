"""
Frequency Analyzer - Value distribution and duplicate detection.

Read-only functions over a bale collection. Nothing here caches or mutates:
every call recomputes from the collection it is given.
"""
from operator import attrgetter
from typing import Callable, List, Sequence, Tuple, Union

from bale_models import BaleRecord

EMPTY_LABEL = '(Empty)'
# The bale identifier. Plain strings always name a mapped column, even one called "id".
ID_FIELD = attrgetter('id')

FieldSelector = Union[str, Callable[[BaleRecord], object]]


def _resolve_selector(field_selector: FieldSelector) -> Callable[[BaleRecord], object]:
    if callable(field_selector):
        return field_selector
    return lambda bale: bale.mapped_values.get(field_selector)


def value_label(value) -> str:
    """String form of a field value; null or blank becomes "(Empty)"."""
    if value is None:
        return EMPTY_LABEL
    if isinstance(value, float) and value != value:  # NaN from spreadsheets
        return EMPTY_LABEL
    text = str(value).strip()
    return text if text else EMPTY_LABEL


def frequencies(bales: Sequence[BaleRecord], field_selector: FieldSelector) -> List[Tuple[str, int]]:
    """
    Count how many bales share each value of a field.

    Args:
        bales: Bale collection (not modified)
        field_selector: ID_FIELD, a mapped column name, or a callable taking a bale

    Returns:
        (value, count) pairs sorted ascending by count; equal counts keep
        the order in which the value was first seen
    """
    getter = _resolve_selector(field_selector)

    counts = {}
    for bale in bales:
        label = value_label(getter(bale))
        counts[label] = counts.get(label, 0) + 1

    # sorted() is stable, so first-seen order survives among equal counts
    return sorted(counts.items(), key=lambda item: item[1])


def duplicates(bales: Sequence[BaleRecord], field_selector: FieldSelector = ID_FIELD) -> List[Tuple[str, int]]:
    """Only the values shared by more than one bale."""
    return [(value, count) for value, count in frequencies(bales, field_selector) if count > 1]


def duplicate_count(bales: Sequence[BaleRecord]) -> int:
    """
    Number of extra weighed entries for an id already weighed.

    Among bales carrying a weight, every occurrence of an id after its first
    counts once. Pending bales never count, unlike the older count over all
    bales, where every unweighed inventory row sharing an id was flagged too.
    """
    weighed = [bale.id for bale in bales if bale.weight is not None]
    return len(weighed) - len(set(weighed))


def total_weight(bales: Sequence[BaleRecord]) -> float:
    return sum(bale.weight for bale in bales if bale.weight is not None)
