# music/time.py
"""Positions and lengths expressed as exact slices of a bar.

A ``Time`` is "the position-th of divisions equal slices of bar", so a
sixteenth grid and a triplet grid can be mixed without floating point:
``Time + Duration`` rebases both operands onto ``lcm`` of their divisions.
Floats only appear when converting to seconds for playback.
"""
from dataclasses import dataclass
from fractions import Fraction
from math import isfinite, lcm

class TimeError(ValueError):
    pass

def bar_seconds(bpm: float, beats_per_bar: int) -> float:
    if not (isfinite(bpm) and bpm > 0 and isfinite(beats_per_bar) and beats_per_bar > 0):
        raise TimeError(f"bpm and beats_per_bar must be positive and finite (got {bpm}, {beats_per_bar})")
    return beats_per_bar * 60.0 / bpm

@dataclass(frozen=True)
class Duration:
    divisions: int
    length: int

    def __post_init__(self):
        if self.divisions < 1:
            raise TimeError(f"divisions must be >= 1, got {self.divisions}")
        if self.length < 1:
            raise TimeError(f"length must be >= 1, got {self.length}")

    @property
    def fraction(self) -> Fraction:
        """Length as a fraction of one bar."""
        return Fraction(self.length, self.divisions)

    def to_seconds(self, bpm: float, beats_per_bar: int) -> float:
        return self.length * bar_seconds(bpm, beats_per_bar) / self.divisions

@dataclass(frozen=True, eq=True)
class Time:
    bar: int
    divisions: int
    position: int  # 1-indexed, 1 = start of bar

    def __post_init__(self):
        if self.bar < 1:
            raise TimeError(f"bar must be >= 1, got {self.bar}")
        if self.divisions < 1:
            raise TimeError(f"divisions must be >= 1, got {self.divisions}")
        if not 1 <= self.position <= self.divisions:
            raise TimeError(f"position must be in [1, {self.divisions}], got {self.position}")

    @property
    def offset(self) -> Fraction:
        """Bars elapsed since the start of the piece."""
        return (self.bar - 1) + Fraction(self.position - 1, self.divisions)

    def __add__(self, other):
        if not isinstance(other, Duration):
            return NotImplemented
        new_div = lcm(self.divisions, other.divisions)
        # rebase the zero-based offset, not the 1-indexed position
        offset = (self.position - 1) * (new_div // self.divisions)
        total = offset + other.length * (new_div // other.divisions)
        carry, rest = divmod(total, new_div)
        return Time(self.bar + carry, new_div, rest + 1)

    # ordering is by instant; == stays structural, so Time(1, 4, 1) and
    # Time(1, 8, 1) are <= each other without being equal
    def __lt__(self, other):
        if not isinstance(other, Time):
            return NotImplemented
        return self.offset < other.offset

    def __le__(self, other):
        if not isinstance(other, Time):
            return NotImplemented
        return self.offset <= other.offset

    def __gt__(self, other):
        if not isinstance(other, Time):
            return NotImplemented
        return self.offset > other.offset

    def __ge__(self, other):
        if not isinstance(other, Time):
            return NotImplemented
        return self.offset >= other.offset

    def to_seconds(self, bpm: float, beats_per_bar: int) -> float:
        return bar_seconds(bpm, beats_per_bar) * (
            (self.bar - 1) + (self.position - 1) / self.divisions
        )

    def __str__(self) -> str:
        return f"{self.bar}:{self.position}/{self.divisions}"
