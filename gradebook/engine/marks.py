"""
Raw mark values as entered by teachers or the exam attendance recorder.

Persistence stores a mark as a nullable number where two negative codes
carry attendance information. Inside the engine a mark is always a `Mark`
so a sentinel can never be averaged by accident.
"""
import enum
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

logger = logging.getLogger(__name__)

ABSENT_CODE = -1
EXCUSED_CODE = -2

MIN_SCORE = Decimal('0')
MAX_SCORE = Decimal('100')


class MarkKind(enum.Enum):
    SCORE = 'score'
    ABSENT = 'absent'
    EXCUSED = 'excused'
    UNSET = 'unset'


class Mark:
    """A single entered mark: a score, an attendance sentinel, or nothing yet."""

    __slots__ = ('kind', 'value')

    def __init__(self, kind: MarkKind, value: Optional[Decimal] = None):
        if (kind is MarkKind.SCORE) != (value is not None):
            raise ValueError('Only score marks carry a value')
        self.kind = kind
        self.value = value

    @classmethod
    def score(cls, value) -> 'Mark':
        return cls(MarkKind.SCORE, _clamp(_parse(value)))

    @classmethod
    def from_raw(cls, raw) -> 'Mark':
        """
        Decode a persisted mark.

        None means not entered, -1 absent, -2 excused. Any other number is a
        score; values outside [0, 100] are clamped and logged. Text that is
        not a finite number raises ValueError.
        """
        if raw is None or raw == '':
            return UNSET
        if isinstance(raw, Mark):
            return raw
        number = _parse(raw)
        if number == ABSENT_CODE:
            return ABSENT
        if number == EXCUSED_CODE:
            return EXCUSED
        return cls(MarkKind.SCORE, _clamp(number))

    def to_raw(self):
        if self.kind is MarkKind.SCORE:
            return int(self.value) if self.value == self.value.to_integral_value() else float(self.value)
        if self.kind is MarkKind.ABSENT:
            return ABSENT_CODE
        if self.kind is MarkKind.EXCUSED:
            return EXCUSED_CODE
        return None

    @property
    def is_score(self):
        return self.kind is MarkKind.SCORE

    @property
    def is_absent(self):
        return self.kind is MarkKind.ABSENT

    @property
    def is_excused(self):
        return self.kind is MarkKind.EXCUSED

    @property
    def is_unset(self):
        return self.kind is MarkKind.UNSET

    def __eq__(self, other):
        if not isinstance(other, Mark):
            return NotImplemented
        return self.kind is other.kind and self.value == other.value

    def __hash__(self):
        return hash((self.kind, self.value))

    def __repr__(self):
        if self.kind is MarkKind.SCORE:
            return f'Mark.score({self.value})'
        return f'Mark.{self.kind.name}'


def _parse(raw) -> Decimal:
    try:
        number = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid mark value: {raw!r}')
    if not number.is_finite():
        raise ValueError(f'Mark must be a finite number: {raw!r}')
    return number


def _clamp(number: Decimal) -> Decimal:
    if number < MIN_SCORE or number > MAX_SCORE:
        clamped = min(max(number, MIN_SCORE), MAX_SCORE)
        logger.warning(f'Score {number} outside [{MIN_SCORE}, {MAX_SCORE}], clamped to {clamped}')
        return clamped
    return number


ABSENT = Mark(MarkKind.ABSENT)
EXCUSED = Mark(MarkKind.EXCUSED)
UNSET = Mark(MarkKind.UNSET)
