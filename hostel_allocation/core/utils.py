"""
Utility Functions and Helpers

Small helpers shared by the allocation services: natural ordering of
room and unit numbers, room display labels and roster normalisation.
"""

import re
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

_DIGITS = re.compile(r"(\d+)")


class SortUtils:
    """Ordering helpers"""

    @staticmethod
    def natural_key(value: Optional[str]) -> Tuple[Any, ...]:
        """
        Key that orders embedded numbers numerically.

        ``"2" < "10"`` and ``"A2" < "A10"``; text segments compare
        case-insensitively.
        """
        if value is None:
            return ()
        parts = _DIGITS.split(str(value))
        # Alternate (kind, value) pairs keep int and str segments comparable.
        return tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
            for part in parts
            if part != ""
        )


class RoomLabelUtils:
    """Human readable room labels"""

    @staticmethod
    def display_room_number(
        room_number: str,
        bed_number: Optional[int],
        unit_number: Optional[str] = None,
    ) -> str:
        """Label used on allocations: ``<unit><room>-<bed>`` or ``<room>-<bed>``."""
        prefix = f"{unit_number}{room_number}" if unit_number else room_number
        return f"{prefix}-{bed_number}" if bed_number else prefix

    @staticmethod
    def sheet_label(
        room_number: str,
        bed_number: int,
        unit_number: Optional[str] = None,
    ) -> str:
        """Label used on occupancy sheets; bed 0 marks an inactive room placeholder."""
        parts = [unit_number] if unit_number else []
        parts.append(room_number)
        if bed_number:
            parts.append(str(bed_number))
        return "-".join(parts)


class TextUtils:
    """Roster normalisation"""

    @staticmethod
    def normalize_roll_number(roll_number: Optional[str]) -> Optional[str]:
        if roll_number is None:
            return None
        value = str(roll_number).strip().upper()
        return value or None

    @staticmethod
    def normalize_email(email: Optional[str]) -> Optional[str]:
        if email is None:
            return None
        value = str(email).strip().lower()
        return value or None

    @staticmethod
    def normalize_code(value: Any) -> Optional[str]:
        """Unit and room numbers arrive as ints or padded strings from spreadsheets."""
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class CollectionUtils:
    """Collection helpers"""

    @staticmethod
    def chunk_list(lst: Sequence[T], chunk_size: Optional[int]) -> List[Sequence[T]]:
        """Split a list into chunks; ``None`` keeps a single chunk"""
        if not chunk_size or chunk_size >= len(lst):
            return [lst] if lst else []
        return [lst[i:i + chunk_size] for i in range(0, len(lst), chunk_size)]

    @staticmethod
    def unique(values: Iterable[T]) -> Iterator[T]:
        """Yield values once, preserving order; ``None`` is skipped"""
        seen = set()
        for value in values:
            if value is None or value in seen:
                continue
            seen.add(value)
            yield value
