from __future__ import annotations

from dataclasses import dataclass

from gpu_imgproc.core.errors import InvalidParameter

_TERM_COUNT = 1
_TERM_EPS = 2


@dataclass(frozen=True, slots=True)
class TermCriteria:
    """Stop condition for iterative mean-shift operations."""

    max_count: int = 5
    epsilon: float = 1.0
    use_count: bool = True
    use_epsilon: bool = True

    def __post_init__(self) -> None:
        if not (self.use_count or self.use_epsilon):
            raise InvalidParameter("at least one of max_count or epsilon must be active", operation="TermCriteria")
        if self.use_count and self.max_count < 1:
            raise InvalidParameter(f"max_count must be >= 1, got {self.max_count}", operation="TermCriteria")
        if self.use_epsilon and self.epsilon < 0:
            raise InvalidParameter(f"epsilon must be >= 0, got {self.epsilon}", operation="TermCriteria")

    @property
    def type_flags(self) -> int:
        flags = 0
        if self.use_count:
            flags |= _TERM_COUNT
        if self.use_epsilon:
            flags |= _TERM_EPS
        return flags

    def as_native(self) -> tuple[int, int, float]:
        """Return the ``(type, maxCount, epsilon)`` tuple OpenCV expects."""
        return (self.type_flags, int(self.max_count), float(self.epsilon))
