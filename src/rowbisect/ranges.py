"""
Half-open row identifier ranges.

A RowRange covers [min_row_id, max_row_id) in the unsigned 64-bit row
identifier space of a table. Ranges are immutable; a failing range is
retired and replaced by the two halves returned from split().
"""

from dataclasses import dataclass

from .exceptions import InvalidBoundsError

MIN_ROW_ID = 0
MAX_ROW_ID = 2**64 - 1


@dataclass(frozen=True, order=True)
class RowRange:
    """Half-open interval [min_row_id, max_row_id) of row identifiers."""

    min_row_id: int
    max_row_id: int

    @property
    def width(self) -> int:
        """Number of row identifiers covered (0 for empty or inverted ranges)."""
        return max(self.max_row_id - self.min_row_id, 0)

    @property
    def is_empty(self) -> bool:
        return self.min_row_id >= self.max_row_id

    @property
    def is_singleton(self) -> bool:
        """True when the range identifies exactly one row."""
        return self.max_row_id == self.min_row_id + 1

    @property
    def midpoint(self) -> int:
        # Lower half gets the extra row when the width is odd
        return self.min_row_id + (self.max_row_id - self.min_row_id) // 2

    def split(self) -> tuple["RowRange", "RowRange"]:
        """
        Split the range into two non-empty, non-overlapping halves.

        Returns:
            Tuple of (lower, upper) whose union is exactly this range

        Raises:
            ValueError: If the range is empty or a singleton
        """
        if self.is_empty:
            raise ValueError(f"Cannot split empty range {self}")
        if self.is_singleton:
            raise ValueError(f"Cannot split singleton range {self}")

        mid = self.midpoint
        return RowRange(self.min_row_id, mid), RowRange(mid, self.max_row_id)

    def __contains__(self, row_id: int) -> bool:
        return self.min_row_id <= row_id < self.max_row_id

    def __str__(self) -> str:
        return f"Range[{self.min_row_id}, {self.max_row_id})"


def from_inclusive_bounds(min_row_id: int, max_row_id: int) -> RowRange:
    """
    Build the range covering the inclusive bounds [min_row_id, max_row_id].

    Args:
        min_row_id: Smallest row identifier present in the table
        max_row_id: Largest row identifier present in the table

    Returns:
        RowRange seeded as [min_row_id, max_row_id + 1)

    Raises:
        InvalidBoundsError: If the bounds are inverted or outside the
            unsigned 64-bit row identifier space
    """
    for name, value in (("min_row_id", min_row_id), ("max_row_id", max_row_id)):
        if not MIN_ROW_ID <= value <= MAX_ROW_ID:
            raise InvalidBoundsError(
                f"{name}={value} is outside the row identifier space "
                f"[{MIN_ROW_ID}, {MAX_ROW_ID}]"
            )

    if max_row_id < min_row_id:
        raise InvalidBoundsError(
            f"Maximum row id {max_row_id} is smaller than minimum row id {min_row_id}"
        )

    return RowRange(min_row_id, max_row_id + 1)
