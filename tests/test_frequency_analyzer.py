"""Tests for value distribution and duplicate counting."""

from bale_models import BaleRecord, STATUS_COMPLETED
from frequency_analyzer import (
    EMPTY_LABEL, ID_FIELD, frequencies, duplicates, duplicate_count, total_weight, value_label,
)


def _bale(bale_id, weight=None, **mapped):
    return BaleRecord(
        id=bale_id, original_id=bale_id, mapped_values=mapped, weight=weight,
        status=STATUS_COMPLETED if weight is not None else 'pending',
    )


class TestFrequencies:

    def test_ascending_by_count(self):
        bales = [_bale("A1"), _bale("A2"), _bale("A1")]
        assert frequencies(bales, ID_FIELD) == [("A2", 1), ("A1", 2)]

    def test_ties_keep_first_seen_order(self):
        bales = [_bale("C"), _bale("A"), _bale("B")]
        assert frequencies(bales, ID_FIELD) == [("C", 1), ("A", 1), ("B", 1)]

    def test_mapped_column_with_empty_values(self):
        bales = [_bale("1", Mic="4.2"), _bale("2", Mic=None), _bale("3", Mic="  "),
                 _bale("4", Mic="4.2"), _bale("5")]
        assert frequencies(bales, 'Mic') == [("4.2", 2), (EMPTY_LABEL, 3)]

    def test_callable_selector(self):
        bales = [_bale("a-1"), _bale("a-2"), _bale("b-1")]
        assert frequencies(bales, lambda b: b.id.split('-')[0]) == [("b", 1), ("a", 2)]

    def test_does_not_modify_collection(self):
        bales = [_bale("A1"), _bale("A2")]
        snapshot = list(bales)
        frequencies(bales, ID_FIELD)
        assert bales == snapshot

    def test_empty_collection(self):
        assert frequencies([], ID_FIELD) == []

    def test_nan_is_empty(self):
        assert value_label(float('nan')) == EMPTY_LABEL
        assert value_label(4.2) == "4.2"


class TestDuplicates:

    def test_duplicates_only_repeated(self):
        bales = [_bale("A"), _bale("B"), _bale("A")]
        assert duplicates(bales) == [("A", 2)]

    def test_duplicate_count_only_weighed(self):
        bales = [
            _bale("A", 100.0),
            _bale("A", 110.0),
            _bale("A", 120.0),
            _bale("B", 90.0),
            _bale("C"),
            _bale("C"),
        ]
        assert duplicate_count(bales) == 2

    def test_no_duplicates(self):
        assert duplicate_count([_bale("A", 1.0), _bale("B", 2.0)]) == 0


def test_total_weight_ignores_pending():
    bales = [_bale("A", 100.5), _bale("B"), _bale("C", 99.5)]
    assert total_weight(bales) == 200.0


def test_column_named_id_is_not_the_bale_id():
    bales = [_bale("A1", **{'id': 'q'}), _bale("A2", **{'id': 'q'})]

    assert frequencies(bales, 'id') == [("q", 2)]
    assert frequencies(bales, ID_FIELD) == [("A1", 1), ("A2", 1)]
