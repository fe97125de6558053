"""
Per-game hole result ledger.

The ledger holds at most one raw result per hole. Recording a hole that
already has a result replaces it, so re-entering a hole after a scoring
correction never duplicates it. Ledgers are immutable: record() returns
a new ledger and leaves the original untouched.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, Optional

from constants import FIRST_HOLE, LAST_HOLE
from errors import ValidationError


def validate_hole_number(hole_number: int) -> int:
    """
    Check that a hole number is on the course.

    Raises:
        ValidationError: If hole_number is not an int in 1-18.
    """
    if isinstance(hole_number, bool) or not isinstance(hole_number, int):
        raise ValidationError(f"Hole number must be an integer, got {hole_number!r}")
    if not FIRST_HOLE <= hole_number <= LAST_HOLE:
        raise ValidationError(
            f"Hole number must be between {FIRST_HOLE} and {LAST_HOLE}, got {hole_number}"
        )
    return hole_number


def parse_amount(value: Any, name: str) -> Decimal:
    """
    Read a money value (Decimal, int or decimal string) as a finite Decimal.

    Raises:
        ValidationError: If the value is missing, a bool, or not a number.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} must be a decimal amount, got {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a decimal amount, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{name} must be a finite amount, got {value!r}")
    return amount


def parse_count(value: Any, name: str) -> int:
    """Integer settings such as thresholds and caps; "2" or 2.0 are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    return value


def parse_flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be true or false, got {value!r}")
    return value


@dataclass(frozen=True)
class HoleResultLedger:
    """
    Immutable map of hole number -> raw hole result.

    Attributes:
        results: Recorded results keyed by hole number.
    """
    results: dict[int, Any] = field(default_factory=dict)

    def record(self, hole_number: int, result: Any) -> "HoleResultLedger":
        """
        Record (or replace) the result for a hole.

        Args:
            hole_number: Hole 1-18.
            result: Engine-specific result payload.

        Returns:
            New ledger containing the result.
        """
        validate_hole_number(hole_number)
        results = dict(self.results)
        results[hole_number] = result
        return HoleResultLedger(results=results)

    def get(self, hole_number: int) -> Optional[Any]:
        """Get the result for a hole, or None if the hole is unrecorded."""
        return self.results.get(hole_number)

    def holes(self) -> list[int]:
        """Recorded hole numbers in playing order."""
        return sorted(self.results)

    def items(self) -> Iterator[tuple[int, Any]]:
        """Iterate (hole_number, result) pairs in playing order."""
        for hole_number in self.holes():
            yield hole_number, self.results[hole_number]

    def unrecorded(self, holes: range) -> list[int]:
        """Holes from the given range that have no result yet."""
        return [h for h in holes if h not in self.results]

    def last_recorded(self, holes: Optional[range] = None) -> Optional[int]:
        """Highest recorded hole, optionally restricted to a range."""
        recorded = [h for h in self.results if holes is None or h in holes]
        return max(recorded) if recorded else None

    def __contains__(self, hole_number: object) -> bool:
        return hole_number in self.results

    def __len__(self) -> int:
        return len(self.results)
