# music/note.py
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

class Letter(Enum):
    C = "C"
    Db = "Db"
    D = "D"
    Eb = "Eb"
    E = "E"
    F = "F"
    Gb = "Gb"
    G = "G"
    Ab = "Ab"
    A = "A"
    Bb = "Bb"
    B = "B"

    @property
    def index(self) -> int:
        return KEYBOARD.index(self)

# twelve-tone order, C first
KEYBOARD: Tuple[Letter, ...] = tuple(Letter)

@dataclass(frozen=True)
class Note:
    letter: Letter
    octave: int

    @classmethod
    def parse(cls, text: str) -> "Note":
        """'A3', 'Bb2', 'Gb10' -> Note. Raises ValueError on anything else."""
        s = str(text).strip()
        i = 1
        if len(s) > 1 and s[1] == "b":
            i = 2
        name, octave = s[:i], s[i:]
        try:
            letter = Letter(name)
        except ValueError:
            raise ValueError(f"Unknown note letter in {text!r}") from None
        if not (octave.isascii() and octave.isdigit()):
            raise ValueError(f"Missing or invalid octave in {text!r}")
        return cls(letter, int(octave))

    @property
    def key_number(self) -> int:
        # C0 = 12; not the General MIDI numbering (A0 = 21)
        return 12 + self.letter.index + self.octave * 12

    @classmethod
    def from_key_number(cls, key: int) -> Optional["Note"]:
        if not 12 <= key <= 127:
            return None
        octave, idx = divmod(key - 12, 12)
        return cls(KEYBOARD[idx], octave)

    def __str__(self) -> str:
        return f"{self.letter.value}{self.octave}"

@dataclass(frozen=True)
class Chord:
    """Notes sounded together; order is kept for emission."""
    notes: Tuple[Note, ...]

    @classmethod
    def parse(cls, names: Iterable[str]) -> "Chord":
        return cls(tuple(Note.parse(n) for n in names))

    def __iter__(self):
        return iter(self.notes)

    def __len__(self) -> int:
        return len(self.notes)

    def __str__(self) -> str:
        return " ".join(str(n) for n in self.notes)
