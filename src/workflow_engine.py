"""
Workflow Engine - Session and bale lifecycle for the weighing station.

The engine drives two kinds of session:

- **manual**: the operator weighs bales as they come off the line. Each bale
  gets the next sequential mill bale number and is appended to the session.
  After every save the next number is offered automatically.
- **inventory**: bales are imported from a spreadsheet up front. The operator
  scans or searches a bale, weighs it, and the record is updated in place.

The engine keeps no "current session" of its own. Every operation takes the
session value it works on and returns the new one, so callers decide what is
on screen and tests need no global fixtures. A returned session is only
produced after the store acknowledged the write; if the write fails the
caller still holds the previous, last-saved value.

Bale states: UNSELECTED -> PENDING -> COMPLETED
Session states: SETUP -> ACTIVE
"""
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PySide6.QtCore import QObject, Signal

from app_config import (
    AppSettings,
    RECOMPLETE_REJECT, RECOMPLETE_OVERWRITE, RECOMPLETE_POLICIES,
    DUPLICATES_ALLOW, DUPLICATES_REJECT, DUPLICATE_POLICIES,
)
from bale_models import (
    BaleRecord, ColumnMapping, Session, SessionConfig,
    MODE_MANUAL, MODE_INVENTORY, STATUS_PENDING, STATUS_COMPLETED,
)
from exceptions import (
    ValidationError, InvalidWeightError, NotFoundError,
    AlreadyCompletedError, SessionBusyError, STEP_LOOKUP,
)
from match_index import MatchIndex
from numbering_policy import peek_next, commit_advance, candidate_bale, validate_setup, amend_setup
from logger import get_logger, set_session_context, set_lot_context

logger = get_logger(__name__)

# Scan lookup outcomes
BALE_FOUND = "BALE_FOUND"
BALE_NOT_FOUND = "BALE_NOT_FOUND"
NEW_BALE = "NEW_BALE"
EMPTY_SCAN = "EMPTY_SCAN"

MAX_QUALITY_COLUMNS = 2


@dataclass
class CompletionResult:
    """
    Outcome of a successful completion.

    Attributes:
        session: The persisted session including the completed bale
        bale: The completed bale as stored
        next_bale: Next sequential candidate (manual) or None (inventory)
    """
    session: Session
    bale: BaleRecord
    next_bale: Optional[BaleRecord]


def _clean_cell(value: Any) -> Any:
    """Spreadsheet cell to a stored scalar: NaN and blank become None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


class WorkflowEngine(QObject):
    """
    Orchestrates session creation, bale lookup, weighing and completion.

    Every mutating operation ends with exactly one ``store.put`` of the whole
    session. Mutations for one session must not overlap; a second mutation
    started while a write is in flight is refused with SessionBusyError.

    Attributes:
        bale_completed (Signal): session_id, bale_id, mill_bale_number
        session_saved (Signal): session_id, emitted after every acknowledged write
        store: Session persistence collaborator (put / get / get_all / delete)
        match_index (MatchIndex): Fuzzy search for inventory sessions
        assessor: Optional quality assessor (assess(value1, value2, mapped_values))
        recomplete_policy (str): 'reject' or 'overwrite' for inventory re-completion
        manual_duplicate_policy (str): 'allow' or 'reject' for repeated manual ids
    """
    bale_completed = Signal(str, str, int)
    session_saved = Signal(str)

    def __init__(self, store, match_index: Optional[MatchIndex] = None, assessor=None,
                 recomplete_policy: str = RECOMPLETE_REJECT,
                 manual_duplicate_policy: str = DUPLICATES_ALLOW,
                 clock: Callable[[], datetime] = datetime.now):
        super().__init__()

        if recomplete_policy not in RECOMPLETE_POLICIES:
            raise ValueError(f"Unknown recomplete policy: {recomplete_policy}")
        if manual_duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(f"Unknown manual duplicate policy: {manual_duplicate_policy}")

        self.store = store
        self.match_index = match_index or MatchIndex()
        self.assessor = assessor
        self.recomplete_policy = recomplete_policy
        self.manual_duplicate_policy = manual_duplicate_policy
        self._clock = clock
        self._writes_in_flight = set()

        logger.info(
            f"WorkflowEngine initialized (recomplete={recomplete_policy}, "
            f"manual duplicates={manual_duplicate_policy}, threshold={self.match_index.threshold})"
        )

    @classmethod
    def from_settings(cls, settings: AppSettings, store, assessor=None) -> 'WorkflowEngine':
        return cls(
            store,
            match_index=MatchIndex(settings.match_threshold),
            assessor=assessor,
            recomplete_policy=settings.recomplete_policy,
            manual_duplicate_policy=settings.manual_duplicate_policy,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, session: Session) -> None:
        """Write the whole session; the caller only adopts it if this returns."""
        if session.id in self._writes_in_flight:
            logger.error(f"Refusing overlapping write for session {session.id}")
            raise SessionBusyError(f"Session {session.id} is still being saved. Wait and try again.")

        self._writes_in_flight.add(session.id)
        try:
            self.store.put(session)
        finally:
            self._writes_in_flight.discard(session.id)

        self.session_saved.emit(session.id)

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    def create_manual_session(self, lot: str, start_number: int = 1,
                              name: Optional[str] = None) -> Tuple[Session, BaleRecord]:
        """
        Create and persist an empty manual session.

        Returns:
            (session, first pending candidate "<lot>-<start_number>")

        Raises:
            ValidationError: If the lot is blank or the start number invalid
        """
        lot, start_number = validate_setup(lot, start_number)

        session = Session(
            id=str(uuid.uuid4()),
            name=name or f"Manual Lot {lot}",
            created_at=self._clock().isoformat(),
            mode=MODE_MANUAL,
            config=SessionConfig(
                start_mill_lot=lot,
                start_mill_bale=start_number,
                current_mill_bale=start_number,
            ),
            bales=[],
        )
        self._persist(session)

        set_session_context(session.id)
        set_lot_context(lot)
        logger.info(f"Manual session created: '{session.name}' starting at bale {start_number}")

        return session, candidate_bale(session.config)

    def create_inventory_session(self, rows: Sequence[Dict[str, Any]], id_column: str,
                                 quality_columns: Sequence[str] = (), lot: str = '',
                                 start_number: int = 1, name: Optional[str] = None) -> Session:
        """
        Create and persist an inventory session from imported rows.

        Each row becomes one pending bale keyed by its ``id_column`` value.
        Mill lot and number stay as placeholders ('' / 0) until completion.

        Args:
            rows: Imported rows, column name -> cell value
            id_column: Column holding the bale identifier
            quality_columns: Up to two quality columns (e.g. Mic, Strength)
            lot: Mill lot for this session
            start_number: First mill bale number
            name: Display name; defaults to "Lot <lot> (<date>)"

        Raises:
            ValidationError: If no id column is chosen, the lot is blank, there
                             are no rows, too many quality columns, or a row
                             has no identifier
        """
        if not id_column:
            raise ValidationError("Select the column that holds the bale identifier.")
        lot, start_number = validate_setup(lot, start_number)

        quality_columns = [c for c in quality_columns if c]
        if len(quality_columns) > MAX_QUALITY_COLUMNS:
            raise ValidationError(
                f"At most {MAX_QUALITY_COLUMNS} quality columns can be mapped, got {len(quality_columns)}."
            )
        if not rows:
            raise ValidationError("The imported table contains no rows.")

        bales = []
        missing_rows = []
        for row_number, row in enumerate(rows, start=1):
            raw_id = _clean_cell(row.get(id_column))
            if raw_id is None:
                missing_rows.append(row_number)
                continue

            bale_id = str(raw_id).strip()
            mapped_values = {id_column: raw_id}
            for column in quality_columns:
                mapped_values[column] = _clean_cell(row.get(column))

            bales.append(BaleRecord(
                id=bale_id,
                original_id=bale_id,
                mapped_values=mapped_values,
                mill_lot='',
                mill_bale_number=0,
                weight=None,
                status=STATUS_PENDING,
            ))

        if missing_rows:
            shown = ', '.join(str(n) for n in missing_rows[:10])
            more = f" and {len(missing_rows) - 10} more" if len(missing_rows) > 10 else ""
            logger.error(f"Import rejected: {len(missing_rows)} rows without '{id_column}'")
            raise ValidationError(f"Rows without a value in '{id_column}': {shown}{more}.")

        value1 = quality_columns[0] if len(quality_columns) > 0 else ''
        value2 = quality_columns[1] if len(quality_columns) > 1 else ''
        now = self._clock()

        session = Session(
            id=str(uuid.uuid4()),
            name=name or f"Lot {lot} ({now:%Y-%m-%d})",
            created_at=now.isoformat(),
            mode=MODE_INVENTORY,
            config=SessionConfig(
                start_mill_lot=lot,
                start_mill_bale=start_number,
                current_mill_bale=start_number,
                column_mapping=ColumnMapping(
                    search_column=id_column,
                    value1=value1,
                    value2=value2,
                    value1_name=value1,
                    value2_name=value2,
                ),
            ),
            bales=bales,
        )
        self._persist(session)

        set_session_context(session.id)
        set_lot_context(lot)
        logger.info(f"Inventory session created: '{session.name}' with {len(bales)} bales")

        return session

    def amend_setup(self, session: Session, lot: Optional[str] = None,
                    start_number: Optional[int] = None) -> Session:
        """
        Correct the lot or start number of a session that holds no bale yet.

        Raises:
            ValidationError: Once the session holds any bale, or for invalid values
        """
        config = amend_setup(session, lot, start_number)
        updated = session.copy_with(config=config)
        self._persist(updated)
        logger.info(f"Setup amended: lot {config.start_mill_lot}, start {config.start_mill_bale}")
        return updated

    # ------------------------------------------------------------------
    # Lookup and selection
    # ------------------------------------------------------------------

    def search(self, session: Session, query: str, limit: Optional[int] = None) -> List[BaleRecord]:
        """
        Fuzzy search an inventory session by identifier.

        Manual sessions have nothing to search: typed text there is a new
        identifier, so the result is always empty.
        """
        if session.is_manual:
            return []
        return self.match_index.search(query, session.bales, limit=limit)

    def lookup_scan(self, session: Session, text: str) -> Tuple[Optional[BaleRecord], str]:
        """
        Resolve a scanned or typed identifier.

        Exact equality against the collection is tried first. Without an exact
        match, inventory sessions report BALE_NOT_FOUND and manual sessions
        start a new pending bale with that id.

        Returns:
            (bale, status) where status is BALE_FOUND, BALE_NOT_FOUND,
            NEW_BALE or EMPTY_SCAN
        """
        identifier = (text or '').strip()
        if not identifier:
            return None, EMPTY_SCAN

        if not session.is_manual:
            bale = MatchIndex.find_exact(identifier, session.bales)
            if bale is None:
                logger.warning(f"Scanned bale '{identifier}' not in inventory")
                return None, BALE_NOT_FOUND
            logger.debug(f"Scanned bale '{identifier}' found")
            return bale, BALE_FOUND

        return self.new_manual_bale(session, identifier), NEW_BALE

    def select_bale(self, session: Session, bale: BaleRecord) -> BaleRecord:
        """
        Put a bale in focus for weighing. Nothing is persisted.

        Inventory selections must come from the session collection.

        Raises:
            NotFoundError: If an inventory bale is not part of the session
        """
        if not session.is_manual and session.find_bale(bale.id) is None:
            raise NotFoundError(f"Bale '{bale.id}' is not part of this session.",
                                bale_id=bale.id, step=STEP_LOOKUP)
        logger.debug(f"Bale '{bale.id}' selected ({bale.status})")
        return bale

    def new_manual_bale(self, session: Session, identifier: Optional[str] = None) -> BaleRecord:
        """
        Synthesize a pending bale keyed by typed/scanned text.

        Empty text gives a generated "MANUAL-<epoch ms>" id. Lot and number
        are provisional until completion.
        """
        bale_id = (identifier or '').strip()
        if not bale_id:
            bale_id = f"MANUAL-{int(self._clock().timestamp() * 1000)}"

        lot, number = peek_next(session.config)
        return BaleRecord(
            id=bale_id,
            original_id=bale_id,
            mapped_values={},
            mill_lot=lot,
            mill_bale_number=number,
            weight=None,
            status=STATUS_PENDING,
        )

    def resume_sequential(self, session: Session) -> BaleRecord:
        """Return the pending candidate for the next number. Repeatable."""
        return candidate_bale(session.config)

    # ------------------------------------------------------------------
    # Weighing and completion
    # ------------------------------------------------------------------

    @staticmethod
    def record_weight(session: Session, bale: BaleRecord, weight_text: str) -> float:
        """
        Parse the operator's weight entry. Nothing is changed or persisted.

        Raises:
            InvalidWeightError: If the text is empty or not a finite number
        """
        text = '' if weight_text is None else str(weight_text).strip()
        if not text:
            raise InvalidWeightError(f"Enter a weight for bale '{bale.id}'.", weight_text=weight_text)

        # float() would accept "1_000" as 1000
        if '_' in text:
            raise InvalidWeightError(f"Weight '{text}' is not a number.", weight_text=weight_text)

        try:
            weight = float(text)
        except ValueError:
            raise InvalidWeightError(f"Weight '{text}' is not a number.", weight_text=weight_text)

        if not math.isfinite(weight):
            raise InvalidWeightError(f"Weight '{text}' is not a number.", weight_text=weight_text)

        return weight

    def assess_bale(self, session: Session, bale: BaleRecord) -> BaleRecord:
        """
        Ask the quality assessor about a pending bale.

        Returns:
            The bale with ``quality_assessment`` filled in (not persisted;
            completing this bale stores the text)

        Raises:
            ValidationError: If no assessor is configured
        """
        if self.assessor is None:
            raise ValidationError("Quality assessment is not configured.", step=STEP_LOOKUP)

        mapping = session.config.column_mapping
        value1 = value2 = 'N/A'
        if mapping is not None:
            if mapping.value1 and bale.mapped_values.get(mapping.value1) is not None:
                value1 = bale.mapped_values[mapping.value1]
            if mapping.value2 and bale.mapped_values.get(mapping.value2) is not None:
                value2 = bale.mapped_values[mapping.value2]

        text = self.assessor.assess(value1, value2, dict(bale.mapped_values))
        logger.info(f"Quality assessment recorded for bale '{bale.id}'")
        return replace(bale, quality_assessment=text)

    def complete_bale(self, session: Session, bale: BaleRecord, weight,
                      assessment: Optional[str] = None) -> CompletionResult:
        """
        Weigh in a bale: assign lot and number, store it, advance the counter.

        Inventory sessions replace the bale with the same id in place;
        manual sessions append. The session is written once, and the counter
        advance is part of that same snapshot.

        Args:
            session: Session as last persisted
            bale: The selected pending bale
            weight: Parsed weight, or weight text to be parsed
            assessment: Quality text; defaults to the bale's own

        Returns:
            CompletionResult with the new session and the next candidate

        Raises:
            InvalidWeightError: If the weight is missing or unparseable
            NotFoundError: If an inventory bale id is not in the session
            AlreadyCompletedError: If the configured policy rejects a repeat
            StorageError: If the snapshot could not be written
        """
        if weight is None or isinstance(weight, str):
            weight = self.record_weight(session, bale, weight)
        weight = float(weight)
        if not math.isfinite(weight):
            raise InvalidWeightError(f"Weight '{weight}' is not a number.", weight_text=str(weight))

        lot, number = peek_next(session.config)
        bales = list(session.bales)

        if session.is_manual:
            source = bale
            self._check_manual_duplicate(session, bale)
        else:
            index = session.find_bale(bale.id)
            if index is None:
                logger.error(f"Completion for bale '{bale.id}' not in session {session.id}")
                raise NotFoundError(
                    f"Bale '{bale.id}' is not part of this session. Search or scan it again.",
                    bale_id=bale.id,
                )
            source = bales[index]
            self._check_recompletion(source)

        completed = replace(
            source,
            weight=weight,
            mill_lot=lot,
            mill_bale_number=number,
            status=STATUS_COMPLETED,
            scanned_at=self._clock().isoformat(),
            quality_assessment=assessment if assessment is not None else bale.quality_assessment,
        )

        if session.is_manual:
            bales.append(completed)
        else:
            bales[index] = completed

        updated = session.copy_with(bales=bales, config=commit_advance(session.config))
        self._persist(updated)

        logger.info(f"Bale '{completed.id}' completed as {completed.mill_tag} ({weight})")
        self.bale_completed.emit(updated.id, completed.id, completed.mill_bale_number)

        next_bale = candidate_bale(updated.config) if updated.is_manual else None
        return CompletionResult(session=updated, bale=completed, next_bale=next_bale)

    def _check_recompletion(self, existing: BaleRecord) -> None:
        if not existing.is_completed:
            return
        if self.recomplete_policy == RECOMPLETE_OVERWRITE:
            logger.warning(
                f"Bale '{existing.id}' already completed as {existing.mill_tag}; overwriting"
            )
            return
        logger.warning(f"Rejected repeat completion of bale '{existing.id}' ({existing.mill_tag})")
        raise AlreadyCompletedError(
            f"Bale '{existing.id}' was already weighed as {existing.mill_tag}.",
            bale_id=existing.id,
            mill_bale_number=existing.mill_bale_number,
        )

    def _check_manual_duplicate(self, session: Session, bale: BaleRecord) -> None:
        if self.manual_duplicate_policy != DUPLICATES_REJECT:
            return
        index = session.find_bale(bale.id)
        if index is None:
            return
        existing = session.bales[index]
        logger.warning(f"Rejected duplicate manual bale '{bale.id}' ({existing.mill_tag})")
        raise AlreadyCompletedError(
            f"Bale '{bale.id}' was already weighed as {existing.mill_tag}.",
            bale_id=bale.id,
            mill_bale_number=existing.mill_bale_number,
        )

    # ------------------------------------------------------------------
    # Stored sessions
    # ------------------------------------------------------------------

    def list_sessions(self) -> List[Session]:
        """All stored sessions, newest first."""
        return self.store.get_all()

    def resume_session(self, session_id: str) -> Tuple[Session, Optional[BaleRecord]]:
        """
        Reopen a stored session.

        Manual sessions never store their pending bale, so the next
        sequential candidate is rebuilt from the counter.

        Returns:
            (session, candidate) where candidate is None for inventory sessions

        Raises:
            NotFoundError: If no session with this id is stored
        """
        session = self.store.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} was not found.", step=STEP_LOOKUP)

        set_session_context(session.id)
        set_lot_context(session.config.start_mill_lot)
        logger.info(
            f"Session resumed: '{session.name}' ({len(session.completed_bales)} completed, "
            f"next bale {session.config.current_mill_bale})"
        )

        candidate = self.resume_sequential(session) if session.is_manual else None
        return session, candidate

    def delete_session(self, session_id: str) -> None:
        self.store.delete(session_id)
        logger.info(f"Session {session_id} deleted")
