"""Tests for scanner text cleanup and decoder failures."""

import pytest

from exceptions import DecoderError
from scan_input import (
    clean_decoded_text, decoder_error, DECODER_MESSAGES,
    REASON_PERMISSION_DENIED, REASON_NOT_FOUND, REASON_DEVICE_BUSY, REASON_INSECURE_CONTEXT,
)


@pytest.mark.parametrize("raw,expected", [
    ("BL-1001\r\n", "BL-1001"),
    ("\x1dBL-1001\t", "BL-1001"),
    ("  Z  ", "Z"),
    (None, ""),
    (12345, "12345"),
])
def test_clean_decoded_text(raw, expected):
    assert clean_decoded_text(raw) == expected


@pytest.mark.parametrize("reason", [
    REASON_PERMISSION_DENIED, REASON_NOT_FOUND, REASON_DEVICE_BUSY, REASON_INSECURE_CONTEXT,
])
def test_decoder_error_for_each_reason(reason):
    err = decoder_error(reason)
    assert isinstance(err, DecoderError)
    assert err.reason == reason
    assert str(err) == DECODER_MESSAGES[reason]
    assert err.step == 'lookup'


def test_unknown_reason():
    with pytest.raises(ValueError):
        decoder_error("gremlins")


def test_cleaned_scan_feeds_lookup(engine, inventory_session):
    bale, status = engine.lookup_scan(inventory_session, clean_decoded_text("BL-1002\r\n"))
    assert status == "BALE_FOUND"
    assert bale.id == "BL-1002"
