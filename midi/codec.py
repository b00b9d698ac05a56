# midi/codec.py
"""Raw MIDI status/data bytes <-> WireMessage.

decode() is total: anything it cannot make sense of comes back as an
``Unknown`` message with no channel and an empty payload. It never raises.
The encoders only build NoteOn/NoteOff frames and do validate their input.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from music.note import Chord, Note

class MessageKind(Enum):
    NoteOff = 0x80
    NoteOn = 0x90
    PolyphonicKeyPressure = 0xA0
    ControlChange = 0xB0
    ProgramChange = 0xC0
    ChannelPressure = 0xD0
    PitchBend = 0xE0
    MidiTimingCode = 0xF1
    SongPositionPointer = 0xF2
    SongSelect = 0xF3
    TuneRequest = 0xF6
    TimingClock = 0xF8
    StartSequence = 0xFA
    ContinueSequence = 0xFB
    StopSequence = 0xFC
    ActiveSensing = 0xFE
    SystemReset = 0xFF
    Unknown = -1

class DataKind(Enum):
    KeyNumber = "KeyNumber"
    Velocity = "Velocity"
    ControllerNumber = "ControllerNumber"
    ControllerValue = "ControllerValue"
    PressureAmount = "PressureAmount"
    ProgramNumber = "ProgramNumber"
    PressureValue = "PressureValue"
    MSB = "MSB"
    LSB = "LSB"
    ResetAllControllers = "ResetAllControllers"
    LocalControl = "LocalControl"
    AllNotesOff = "AllNotesOff"
    OmniModeOff = "OmniModeOff"
    OmniModeOn = "OmniModeOn"
    MonoModeOn = "MonoModeOn"
    PolyModeOn = "PolyModeOn"
    Generic = "Generic"

@dataclass(frozen=True)
class Data:
    kind: DataKind
    value: Optional[int] = None

    def __str__(self) -> str:
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value}({self.value})"

@dataclass(frozen=True)
class WireMessage:
    channel: Optional[int]
    kind: MessageKind
    payload: Tuple[Data, ...] = ()
    stamp: int = 0

    @property
    def note(self) -> Optional[Note]:
        if self.kind not in (MessageKind.NoteOn, MessageKind.NoteOff) or not self.payload:
            return None
        return Note.from_key_number(self.payload[0].value)

    def __str__(self) -> str:
        ch = "--" if self.channel is None else f"{self.channel:2d}"
        data = ", ".join(str(d) for d in self.payload)
        note = self.note
        if note is not None:
            return f"Ti: {self.stamp} | Ch: {ch} | St: {self.kind.name:<15} | No: {note} | Da: [{data}]"
        return f"Ti: {self.stamp} | Ch: {ch} | St: {self.kind.name:<15} | Da: [{data}]"

UNKNOWN_PAYLOAD: Tuple[Data, ...] = ()

# high nibble -> (kind, data kinds of the two data bytes)
_CHANNEL_VOICE = {
    0x8: (MessageKind.NoteOff, (DataKind.KeyNumber, DataKind.Velocity)),
    0x9: (MessageKind.NoteOn, (DataKind.KeyNumber, DataKind.Velocity)),
    0xA: (MessageKind.PolyphonicKeyPressure, (DataKind.KeyNumber, DataKind.PressureAmount)),
    0xC: (MessageKind.ProgramChange, (DataKind.ProgramNumber,)),
    0xD: (MessageKind.ChannelPressure, (DataKind.PressureValue,)),
    0xE: (MessageKind.PitchBend, (DataKind.MSB, DataKind.LSB)),
}

# controller number -> channel mode data; 0x7A carries the on/off value
_CHANNEL_MODE = {
    0x79: DataKind.ResetAllControllers,
    0x7A: DataKind.LocalControl,
    0x7B: DataKind.AllNotesOff,
    0x7C: DataKind.OmniModeOff,
    0x7D: DataKind.OmniModeOn,
    0x7E: DataKind.MonoModeOn,
    0x7F: DataKind.PolyModeOn,
}

# low nibble of 0xF? -> (kind, number of generic data bytes)
_SYSTEM = {
    0x1: (MessageKind.MidiTimingCode, 1),
    0x2: (MessageKind.SongPositionPointer, 2),
    0x3: (MessageKind.SongSelect, 1),
    0x6: (MessageKind.TuneRequest, 0),
    0x8: (MessageKind.TimingClock, 0),
    0xA: (MessageKind.StartSequence, 0),
    0xB: (MessageKind.ContinueSequence, 0),
    0xC: (MessageKind.StopSequence, 0),
    0xE: (MessageKind.ActiveSensing, 0),
    0xF: (MessageKind.SystemReset, 0),
}

def _is_byte(v, top: int) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= top

def data_length(status: int) -> int:
    """How many data bytes follow ``status``. 0 for anything unrecognised."""
    if not _is_byte(status, 0xFF):
        return 0
    hi, lo = status >> 4, status & 0x0F
    if hi in _CHANNEL_VOICE:
        return len(_CHANNEL_VOICE[hi][1])
    if hi == 0xB:
        return 2
    if hi == 0xF and lo in _SYSTEM:
        return _SYSTEM[lo][1]
    return 0

def _unknown(stamp: int) -> WireMessage:
    return WireMessage(None, MessageKind.Unknown, UNKNOWN_PAYLOAD, stamp)

def decode(status: int, data: Sequence[int] = (), stamp: int = 0) -> WireMessage:
    if not _is_byte(status, 0xFF):
        return _unknown(stamp)
    try:
        data = tuple(data)
    except TypeError:
        return _unknown(stamp)
    hi, lo = status >> 4, status & 0x0F
    need = data_length(status)
    if len(data) < need or not all(_is_byte(b, 0x7F) for b in data[:need]):
        return _unknown(stamp)

    if hi in _CHANNEL_VOICE:
        kind, fields = _CHANNEL_VOICE[hi]
        payload = tuple(Data(k, v) for k, v in zip(fields, data))
        return WireMessage(lo, kind, payload, stamp)

    if hi == 0xB:
        controller, value = data[0], data[1]
        mode = _CHANNEL_MODE.get(controller)
        if mode is None:
            payload = (Data(DataKind.ControllerNumber, controller),
                       Data(DataKind.ControllerValue, value))
            return WireMessage(lo, MessageKind.ControlChange, payload, stamp)
        if mode is DataKind.LocalControl:
            return WireMessage(None, MessageKind.ControlChange, (Data(mode, value),), stamp)
        return WireMessage(None, MessageKind.ControlChange, (Data(mode),), stamp)

    if hi == 0xF and lo in _SYSTEM:
        kind, n = _SYSTEM[lo]
        payload = tuple(Data(DataKind.Generic, b) for b in data[:n])
        return WireMessage(None, kind, payload, stamp)

    return _unknown(stamp)

@dataclass(frozen=True)
class RawMessage:
    """One inbound frame as delivered by a port: timestamp, status, data."""
    stamp: int
    status: int
    data: Tuple[int, ...] = ()

    @classmethod
    def from_bytes(cls, stamp: int, raw: Sequence[int]) -> "RawMessage":
        raw = tuple(raw)
        if not raw:
            return cls(stamp, -1, ())
        return cls(stamp, raw[0], raw[1:])

    def parse(self) -> WireMessage:
        return decode(self.status, self.data, self.stamp)

# ---------- encoding ----------

def _check(name: str, value: int, top: int) -> int:
    if not _is_byte(value, top):
        raise ValueError(f"{name} must be in [0, {top}], got {value!r}")
    return value

def key_number(note: Note) -> int:
    return _check("key number", note.key_number, 0x7F)

def note_on(key: int, velocity: int = 100, channel: int = 0) -> bytes:
    return bytes([0x90 | _check("channel", channel, 0x0F),
                  _check("key", key, 0x7F),
                  _check("velocity", velocity, 0x7F)])

def note_off(key: int, velocity: int = 100, channel: int = 0) -> bytes:
    return bytes([0x80 | _check("channel", channel, 0x0F),
                  _check("key", key, 0x7F),
                  _check("velocity", velocity, 0x7F)])

def encode_event(kind: MessageKind, note: Note, channel: int = 0, velocity: int = 100) -> bytes:
    if kind is MessageKind.NoteOn:
        return note_on(key_number(note), velocity, channel)
    if kind is MessageKind.NoteOff:
        return note_off(key_number(note), velocity, channel)
    raise ValueError(f"Only NoteOn/NoteOff can be encoded, got {kind}")

def encode_note(note: Note, channel: int = 0, velocity: int = 100) -> Tuple[bytes, bytes]:
    """(note on, note off) frames for one note."""
    k = key_number(note)
    return note_on(k, velocity, channel), note_off(k, velocity, channel)

def encode_chord(chord: Chord, channel: int = 0,
                 velocity: int = 100) -> Tuple[Tuple[bytes, ...], Tuple[bytes, ...]]:
    """All note-on frames then all note-off frames, in chord order."""
    pairs = [encode_note(n, channel, velocity) for n in chord]
    return tuple(on for on, _ in pairs), tuple(off for _, off in pairs)
