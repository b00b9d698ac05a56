# midi/send.py
import time
from typing import Callable

from midi.codec import encode_chord, encode_note
from midi.ports import Transport
from music.note import Chord, Note

def send_note(transport: Transport, note: Note, hold: float, velocity: int = 100,
              channel: int = 0, wait: Callable[[float], None] = time.sleep) -> None:
    """Note on, hold for `hold` seconds, note off. Blocks for the hold."""
    on, off = encode_note(note, channel, velocity)
    transport.send(on)
    wait(hold)
    transport.send(off)

def send_chord(transport: Transport, chord: Chord, hold: float, velocity: int = 100,
               channel: int = 0, wait: Callable[[float], None] = time.sleep) -> None:
    """Every note on, one shared hold, every note off."""
    ons, offs = encode_chord(chord, channel, velocity)
    for frame in ons:
        transport.send(frame)
    wait(hold)
    for frame in offs:
        transport.send(frame)
