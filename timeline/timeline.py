# timeline/timeline.py
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, NamedTuple, Tuple

from midi.codec import MessageKind
from music.note import Chord, Note
from music.time import Duration, Time

class EventKind(Enum):
    NOTE_ON = "note_on"
    NOTE_OFF = "note_off"

    @property
    def message(self) -> MessageKind:
        return MessageKind.NoteOn if self is EventKind.NOTE_ON else MessageKind.NoteOff

@dataclass(frozen=True)
class Event:
    time: Time
    kind: EventKind
    note: Note

class ScheduledEvent(NamedTuple):
    seconds: float
    kind: EventKind
    note: Note

class Timeline:
    """Note events stamped with exact bar positions, kept in insertion order.

    Insertion order matters: when two events land on the same instant the
    one added first is played first (so a NoteOn added before a NoteOff at
    the same time always sounds). Do not mutate while a Scheduler is
    playing it.
    """
    def __init__(self):
        self._events: List[Event] = []

    def add_event(self, time: Time, kind: EventKind, note: Note) -> None:
        self._events.append(Event(time, kind, note))

    def add_note(self, note: Note, time: Time, duration: Duration) -> None:
        self.add_event(time, EventKind.NOTE_ON, note)
        self.add_event(time + duration, EventKind.NOTE_OFF, note)

    def add_chord(self, chord: Chord, time: Time, duration: Duration) -> None:
        end = time + duration
        for n in chord:
            self.add_event(time, EventKind.NOTE_ON, n)
        for n in chord:
            self.add_event(end, EventKind.NOTE_OFF, n)

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def to_absolute(self, bpm: float, beats_per_bar: int) -> List[ScheduledEvent]:
        out = [ScheduledEvent(e.time.to_seconds(bpm, beats_per_bar), e.kind, e.note)
               for e in self._events]
        # sort is stable: equal timestamps keep insertion order
        out.sort(key=lambda s: s.seconds)
        return out

    def end_seconds(self, bpm: float, beats_per_bar: int) -> float:
        return max((e.time.to_seconds(bpm, beats_per_bar) for e in self._events), default=0.0)
