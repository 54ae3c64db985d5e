"""
Sequential mill-bale numbering.

The session config holds the next number to hand out. Peeking is free and
repeatable; the counter only moves when a completed bale has been accepted.
"""
from dataclasses import replace
from typing import Tuple

from bale_models import BaleRecord, Session, SessionConfig, STATUS_PENDING
from exceptions import ValidationError


def peek_next(config: SessionConfig) -> Tuple[str, int]:
    """Return the (lot, number) the next completed bale will receive."""
    return config.start_mill_lot, config.current_mill_bale


def commit_advance(config: SessionConfig) -> SessionConfig:
    """Return a new config with the counter moved past the number just used."""
    return replace(config, current_mill_bale=config.current_mill_bale + 1)


def candidate_bale(config: SessionConfig) -> BaleRecord:
    """
    Build the pending bale for the next sequential number.

    The candidate is keyed "<lot>-<number>" and is never stored; it only
    exists so the operator has something to weigh.
    """
    lot, number = peek_next(config)
    bale_id = f"{lot}-{number}"
    return BaleRecord(
        id=bale_id,
        original_id=bale_id,
        mapped_values={},
        mill_lot=lot,
        mill_bale_number=number,
        weight=None,
        status=STATUS_PENDING,
    )


def validate_setup(lot: str, start_number) -> Tuple[str, int]:
    """
    Check lot and first bale number entered at setup.

    Returns:
        (lot, start_number) normalized

    Raises:
        ValidationError: If the lot is blank or the start number is not an integer >= 1
    """
    lot = (lot or '').strip()
    if not lot:
        raise ValidationError("Mill lot number is required.")

    try:
        number = int(start_number)
    except (TypeError, ValueError):
        raise ValidationError(f"Start bale number must be a whole number, got '{start_number}'.")

    if number < 1:
        raise ValidationError(f"Start bale number must be 1 or greater, got {number}.")

    return lot, number


def amend_setup(session: Session, lot: str = None, start_number=None) -> SessionConfig:
    """
    Return a config with a corrected lot and/or start number.

    Only allowed while the session holds no bale: inventory sessions hold
    their imported bales from the start, so their setup is fixed at import.

    Raises:
        ValidationError: If the session already holds bales or the new
                         values are invalid
    """
    if session.bales:
        raise ValidationError(
            f"Lot and start number cannot be changed: the session already holds "
            f"{len(session.bales)} bale(s)."
        )

    config = session.config
    new_lot, new_start = validate_setup(
        config.start_mill_lot if lot is None else lot,
        config.start_mill_bale if start_number is None else start_number,
    )
    return replace(
        config,
        start_mill_lot=new_lot,
        start_mill_bale=new_start,
        current_mill_bale=new_start,
    )
