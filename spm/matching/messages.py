"""
Result types returned to the caller of the matching protocol.
"""

from dataclasses import dataclass, field

from ..backend.stats import BackendStats


@dataclass
class WindowMatch:
    """Outcome for a single window."""

    window: int  # offset of the window in the text
    matched: bool


@dataclass
class RepetitionResult:
    """Per-window outcomes of one protocol repetition."""

    matches: list[WindowMatch]

    @property
    def pattern_found(self) -> bool:
        return any(m.matched for m in self.matches)

    @property
    def matching_windows(self) -> list[int]:
        return [m.window for m in self.matches if m.matched]

    def as_bits(self) -> list[bool]:
        return [m.matched for m in self.matches]


@dataclass
class MatchReport:
    """All repetitions of a run plus accumulated backend statistics."""

    repetitions: list[RepetitionResult] = field(default_factory=list)
    stats: BackendStats = field(default_factory=BackendStats)

    @property
    def pattern_found(self) -> bool:
        """Outcome of the last completed repetition."""
        if not self.repetitions:
            return False
        return self.repetitions[-1].pattern_found

    def to_dict(self) -> dict:
        return {
            "repetitions": [
                {
                    "pattern_found": rep.pattern_found,
                    "matches": [
                        {"window": m.window, "matched": m.matched} for m in rep.matches
                    ],
                }
                for rep in self.repetitions
            ],
            "stats": self.stats.to_dict(),
        }
