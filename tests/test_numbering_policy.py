"""Tests for sequential mill bale numbering."""

import pytest

from bale_models import BaleRecord, Session, SessionConfig, MODE_MANUAL, STATUS_COMPLETED, STATUS_PENDING
from exceptions import ValidationError
from numbering_policy import peek_next, commit_advance, candidate_bale, validate_setup, amend_setup


def _session(bales=()):
    return Session(
        id="s1", name="Manual Lot L9", created_at="2026-10-19T08:00:00", mode=MODE_MANUAL,
        config=SessionConfig(start_mill_lot="L9", start_mill_bale=5, current_mill_bale=5),
        bales=list(bales),
    )


class TestCounter:

    def test_peek_is_repeatable(self):
        config = SessionConfig("L9", 5, 7)
        assert peek_next(config) == ("L9", 7)
        assert peek_next(config) == ("L9", 7)

    def test_commit_advance_returns_new_config(self):
        config = SessionConfig("L9", 5, 7)
        advanced = commit_advance(config)

        assert advanced.current_mill_bale == 8
        assert advanced.start_mill_bale == 5
        assert config.current_mill_bale == 7

    def test_candidate(self):
        bale = candidate_bale(SessionConfig("L9", 5, 7))
        assert bale.id == "L9-7"
        assert bale.mill_lot == "L9"
        assert bale.mill_bale_number == 7
        assert bale.status == STATUS_PENDING
        assert bale.weight is None


class TestValidateSetup:

    def test_normalizes(self):
        assert validate_setup("  L9 ", "5") == ("L9", 5)

    @pytest.mark.parametrize("lot,start", [(None, 1), ("", 1), ("L9", 0), ("L9", -3), ("L9", "five"), ("L9", None)])
    def test_rejects(self, lot, start):
        with pytest.raises(ValidationError):
            validate_setup(lot, start)


class TestAmendSetup:

    def test_changes_lot_and_resets_counter(self):
        config = amend_setup(_session(), lot="L10", start_number=40)
        assert (config.start_mill_lot, config.start_mill_bale, config.current_mill_bale) == ("L10", 40, 40)

    def test_partial_change_keeps_other_value(self):
        config = amend_setup(_session(), start_number=9)
        assert config.start_mill_lot == "L9"
        assert config.current_mill_bale == 9

    def test_rejected_after_completion(self):
        done = BaleRecord(id="X", original_id="X", status=STATUS_COMPLETED, weight=100.0,
                          mill_lot="L9", mill_bale_number=5)
        with pytest.raises(ValidationError, match="already holds"):
            amend_setup(_session([done]), lot="L10")

    def test_rejected_for_pending_imported_bales(self):
        pending = BaleRecord(id="BL-1", original_id="BL-1")
        with pytest.raises(ValidationError):
            amend_setup(_session([pending]), start_number=9)
