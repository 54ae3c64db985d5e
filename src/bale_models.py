"""
Bale Models - Data shapes for bales, sessions and their configuration.

A session is persisted as one JSON document. These dataclasses are the
in-memory form; ``to_dict``/``from_dict`` convert to and from the stored form.
Objects are treated as values: the workflow engine builds new instances
(``dataclasses.replace``) instead of mutating ones the caller still holds.
"""
from dataclasses import dataclass, field, asdict, replace
from typing import Dict, List, Optional, Union, Any

STATUS_PENDING = 'pending'
STATUS_COMPLETED = 'completed'

MODE_MANUAL = 'manual'
MODE_INVENTORY = 'inventory'

SESSION_ACTIVE = 'active'
SESSION_ARCHIVED = 'archived'

Scalar = Union[str, int, float, None]


@dataclass
class BaleRecord:
    """
    A single physical bale.

    Attributes:
        id: Identifier scanned or typed by the operator
        original_id: Identifier at creation time (equals id)
        mapped_values: Identifier and quality columns copied from the import
        mill_lot: Lot assigned at completion (placeholder while pending)
        mill_bale_number: Sequential number assigned at completion
        weight: Measured weight, None until recorded
        status: 'pending' or 'completed'
        scanned_at: ISO timestamp of completion
        quality_assessment: Advisory text from the quality assessor
    """
    id: str
    original_id: str
    mapped_values: Dict[str, Scalar] = field(default_factory=dict)
    mill_lot: str = ''
    mill_bale_number: int = 0
    weight: Optional[float] = None
    status: str = STATUS_PENDING
    scanned_at: Optional[str] = None
    quality_assessment: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def mill_tag(self) -> str:
        """Lot and number in the "<lot>-<number>" form printed on tags."""
        return f"{self.mill_lot}-{self.mill_bale_number}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['mapped_values'] = dict(self.mapped_values)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaleRecord':
        weight = data.get('weight')
        return cls(
            id=str(data['id']),
            original_id=str(data.get('original_id', data['id'])),
            mapped_values=dict(data.get('mapped_values') or {}),
            mill_lot=data.get('mill_lot') or '',
            mill_bale_number=int(data.get('mill_bale_number') or 0),
            weight=float(weight) if weight is not None else None,
            status=data.get('status', STATUS_PENDING),
            scanned_at=data.get('scanned_at'),
            quality_assessment=data.get('quality_assessment'),
        )


@dataclass
class ColumnMapping:
    """
    Names of the source-table columns used by an inventory session.

    Attributes:
        search_column: Column holding the bale identifier
        value1 / value2: Up to two quality columns ('' when not mapped)
        value1_name / value2_name: Labels used in reports
    """
    search_column: str
    value1: str = ''
    value2: str = ''
    value1_name: str = ''
    value2_name: str = ''

    @property
    def quality_columns(self) -> List[str]:
        return [c for c in (self.value1, self.value2) if c]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColumnMapping':
        return cls(
            search_column=data['search_column'],
            value1=data.get('value1') or '',
            value2=data.get('value2') or '',
            value1_name=data.get('value1_name') or data.get('value1') or '',
            value2_name=data.get('value2_name') or data.get('value2') or '',
        )


@dataclass
class SessionConfig:
    """
    Lot identity and sequential numbering state.

    ``current_mill_bale`` is the number the next completed bale receives.
    It only ever grows, one step per completion.
    """
    start_mill_lot: str
    start_mill_bale: int = 1
    current_mill_bale: int = 1
    column_mapping: Optional[ColumnMapping] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_mill_lot': self.start_mill_lot,
            'start_mill_bale': self.start_mill_bale,
            'current_mill_bale': self.current_mill_bale,
            'column_mapping': self.column_mapping.to_dict() if self.column_mapping else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionConfig':
        mapping = data.get('column_mapping')
        return cls(
            start_mill_lot=str(data['start_mill_lot']),
            start_mill_bale=int(data.get('start_mill_bale', 1)),
            current_mill_bale=int(data.get('current_mill_bale', data.get('start_mill_bale', 1))),
            column_mapping=ColumnMapping.from_dict(mapping) if mapping else None,
        )


@dataclass
class Session:
    """
    A weighing session: one lot, one mode, one ordered bale collection.

    Manual sessions only hold completed bales (appended in completion order).
    Inventory sessions hold one bale per imported row, updated in place.
    """
    id: str
    name: str
    created_at: str
    mode: str
    config: SessionConfig
    bales: List[BaleRecord] = field(default_factory=list)
    status: str = SESSION_ACTIVE

    @property
    def is_manual(self) -> bool:
        return self.mode == MODE_MANUAL

    @property
    def completed_bales(self) -> List[BaleRecord]:
        return [b for b in self.bales if b.is_completed]

    def find_bale(self, bale_id: str) -> Optional[int]:
        """Return the index of the first bale with exactly this id, or None."""
        for index, bale in enumerate(self.bales):
            if bale.id == bale_id:
                return index
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'created_at': self.created_at,
            'mode': self.mode,
            'config': self.config.to_dict(),
            'bales': [b.to_dict() for b in self.bales],
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            created_at=data['created_at'],
            mode=data['mode'],
            config=SessionConfig.from_dict(data['config']),
            bales=[BaleRecord.from_dict(b) for b in data.get('bales', [])],
            status=data.get('status', SESSION_ACTIVE),
        )

    def copy_with(self, **changes) -> 'Session':
        """Shallow copy with a fresh bale list, so edits never leak to the original."""
        changes.setdefault('bales', list(self.bales))
        return replace(self, **changes)
