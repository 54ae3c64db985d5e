"""
Custom exceptions for the CottonLog bale tracker.

This module defines application-specific exceptions so that every failure can
tell the operator which step of the weighing workflow went wrong and whether
it is safe to simply try again. Scale-house operators are not technical users,
so the message has to say more than "error".

Each exception carries a ``step`` naming where the workflow stopped:
    setup        - creating or amending a session
    lookup       - finding a bale by scan or typed identifier
    weight_entry - parsing the weight typed by the operator
    completion   - committing a weighed bale into the session
    persistence  - writing the session snapshot to storage

Exception hierarchy:
    CottonLogError (base)
    ├── ValidationError (missing or invalid setup field)
    ├── InvalidWeightError (weight text empty or not a number)
    ├── NotFoundError (bale id missing from an inventory session)
    ├── AlreadyCompletedError (bale already completed, policy rejects it)
    ├── StorageError (persistence collaborator failed)
    │   └── SessionBusyError (write for the same session still in flight)
    └── DecoderError (camera/scanner reported a terminal condition)
"""

from typing import Optional


STEP_SETUP = 'setup'
STEP_LOOKUP = 'lookup'
STEP_WEIGHT_ENTRY = 'weight_entry'
STEP_COMPLETION = 'completion'
STEP_PERSISTENCE = 'persistence'

# Human-readable step names for operator messages
STEP_LABELS = {
    STEP_SETUP: 'Session setup',
    STEP_LOOKUP: 'Bale lookup',
    STEP_WEIGHT_ENTRY: 'Weight entry',
    STEP_COMPLETION: 'Bale completion',
    STEP_PERSISTENCE: 'Saving session',
}


class CottonLogError(Exception):
    """
    Base exception for all CottonLog errors.

    All application-specific exceptions inherit from this class, so the
    presentation layer can catch everything with a single except clause:
        try:
            engine.complete_bale(session, bale, weight)
        except CottonLogError as e:
            show_message(e.get_display_message())

    Attributes:
        step (str | None): Workflow step that failed (see module docstring)
    """

    default_step: Optional[str] = None
    retry_safe: bool = True

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step or self.default_step

    def get_display_message(self) -> str:
        """
        Get a user-friendly message naming the failed step.

        Returns:
            Message suitable for a dialog, e.g.
            "Weight entry failed: Weight 'abc' is not a number.

            Nothing was saved. Correct the input and try again."
        """
        label = STEP_LABELS.get(self.step, 'Operation')
        if self.retry_safe:
            advice = "Nothing was saved. Correct the input and try again."
        else:
            advice = "The operation was aborted and the session was not changed."
        return f"{label} failed: {self}\n\n{advice}"


class ValidationError(CottonLogError):
    """
    Raised when a required setup field is missing or invalid.

    Examples: no lot number entered, no identifier column mapped, start bale
    number below 1, or an attempt to change the lot after bales were weighed.
    """

    default_step = STEP_SETUP


class InvalidWeightError(CottonLogError):
    """
    Raised when the weight typed by the operator cannot be parsed.

    Attributes:
        weight_text (str): The rejected input, kept for the error dialog
    """

    default_step = STEP_WEIGHT_ENTRY

    def __init__(self, message: str, weight_text: Optional[str] = None):
        super().__init__(message)
        self.weight_text = weight_text


class NotFoundError(CottonLogError):
    """
    Raised when a bale id is not part of an inventory session.

    At completion time this means the selected bale and the session
    collection have diverged, so it is surfaced rather than recovered.

    Attributes:
        bale_id (str): The identifier that could not be located
    """

    default_step = STEP_COMPLETION
    retry_safe = False

    def __init__(self, message: str, bale_id: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message, step)
        self.bale_id = bale_id


class AlreadyCompletedError(CottonLogError):
    """
    Raised when a bale that is already completed is completed again and the
    configured policy rejects it (duplicate scan after save).

    Attributes:
        bale_id (str): Identifier of the already-completed bale
        mill_bale_number (int | None): Number it was completed under
    """

    default_step = STEP_COMPLETION

    def __init__(self, message: str, bale_id: Optional[str] = None,
                 mill_bale_number: Optional[int] = None):
        super().__init__(message)
        self.bale_id = bale_id
        self.mill_bale_number = mill_bale_number


class StorageError(CottonLogError):
    """
    Raised when the session store fails to write, read or delete a snapshot.

    The underlying exception is kept in ``__cause__`` (raise ... from ...).
    The engine performs no retries; the in-memory session stays at its last
    successfully persisted value.
    """

    default_step = STEP_PERSISTENCE
    retry_safe = False


class SessionBusyError(StorageError):
    """
    Raised when a mutation is started while a write for the same session is
    still in flight. Callers must serialize mutations per session.
    """

    retry_safe = True


class DecoderError(CottonLogError):
    """
    Raised when the barcode/QR decoder reports a terminal condition.

    Attributes:
        reason (str): One of permission-denied, not-found, device-busy,
                      insecure-context
    """

    default_step = STEP_LOOKUP
    retry_safe = False

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
