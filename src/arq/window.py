"""
Sequence Window Arithmetic

Pure helpers over the circular sequence space, plus the fixed-capacity
slot container both entities use for their per-sequence-number state.
"""

from typing import Generic, Iterator, List, Optional, TypeVar

from config import WINDOWSIZE, SEQSPACE


T = TypeVar('T')


def validate_window(window_size: int, seqspace: int):
    """
    Check a window size / sequence space combination.

    Raises:
        ValueError: if the receiver could not tell a new packet from an
            old duplicate
    """
    if window_size < 1:
        raise ValueError("Window size must be at least 1")
    if seqspace < window_size + 1:
        raise ValueError(
            f"Sequence space {seqspace} must be at least window size + 1 "
            f"({window_size + 1})"
        )


def is_in_window(
    base: int,
    seqnum: int,
    window_size: int = WINDOWSIZE,
    seqspace: int = SEQSPACE
) -> bool:
    """
    Check whether seqnum is one of the window_size values starting at base.

    Args:
        base: First sequence number of the window
        seqnum: Sequence number to test
        window_size: Window length
        seqspace: Sequence space modulus

    Returns:
        True if seqnum lies in the circular window
    """
    upper = (base + window_size) % seqspace
    if base <= (base + window_size - 1) % seqspace:
        # no wraparound
        return base <= seqnum < base + window_size
    # window wraps past seqspace - 1
    return seqnum >= base or seqnum < upper


def seq_distance(base: int, seqnum: int, seqspace: int = SEQSPACE) -> int:
    """Forward distance from base to seqnum around the sequence space."""
    return (seqnum - base) % seqspace


def next_seq(seqnum: int, seqspace: int = SEQSPACE) -> int:
    """Sequence number following seqnum."""
    return (seqnum + 1) % seqspace


def previous_seq(seqnum: int, seqspace: int = SEQSPACE) -> int:
    """Sequence number preceding seqnum (seqspace - 1 before 0)."""
    return seqspace - 1 if seqnum == 0 else seqnum - 1


class SequenceSlots(Generic[T]):
    """
    Fixed-capacity container indexed by sequence number.

    One slot per value of the sequence space. Slots are cleared, never
    removed, so the container size stays constant for the whole session.
    """

    def __init__(self, seqspace: int = SEQSPACE, default: Optional[T] = None):
        """
        Initialize slot container.

        Args:
            seqspace: Number of slots
            default: Value of a cleared slot
        """
        self.seqspace = seqspace
        self.default = default
        self._slots: List[Optional[T]] = [default] * seqspace

    def __getitem__(self, seqnum: int) -> Optional[T]:
        return self._slots[seqnum % self.seqspace]

    def __setitem__(self, seqnum: int, value: T):
        self._slots[seqnum % self.seqspace] = value

    def __len__(self) -> int:
        return self.seqspace

    def __iter__(self) -> Iterator[Optional[T]]:
        return iter(self._slots)

    def clear(self, seqnum: int):
        """Reset a single slot to the default value."""
        self._slots[seqnum % self.seqspace] = self.default

    def clear_all(self):
        """Reset every slot."""
        self._slots = [self.default] * self.seqspace

    def occupied(self) -> List[int]:
        """Sequence numbers whose slot differs from the default."""
        return [seq for seq, value in enumerate(self._slots)
                if value != self.default]
