# midi/midifile.py
import logging
from typing import Tuple

import mido

from music.note import Note
from music.time import Time
from timeline.timeline import EventKind, Timeline

DEFAULT_TEMPO = 500000  # 120 bpm

def time_to_ticks(t: Time, ppq: int, beats_per_bar: int) -> int:
    return round(t.offset * ppq * beats_per_bar)

def ticks_to_time(ticks: int, ppq: int, beats_per_bar: int) -> Time:
    """Exact: one division per tick, so nothing is quantised."""
    div = ppq * beats_per_bar
    bar, pos = divmod(int(ticks), div)
    return Time(bar + 1, div, pos + 1)

def write_timeline(timeline: Timeline, path: str, bpm: float = 120.0, beats_per_bar: int = 4,
                   ppq: int = 480, channel: int = 0, velocity: int = 100) -> None:
    """
    Write the timeline as a single-track type 1 SMF.
    Steps:
      - set tempo meta
      - order events by bar position, insertion order on ties
      - delta-encode times
    """
    mid = mido.MidiFile(type=1)
    mid.ticks_per_beat = int(ppq)
    track = mido.MidiTrack()
    mid.tracks.append(track)
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))

    events = sorted(timeline, key=lambda e: e.time.offset)
    last_t = 0
    for ev in events:
        abs_t = time_to_ticks(ev.time, ppq, beats_per_bar)
        kind = "note_on" if ev.kind is EventKind.NOTE_ON else "note_off"
        track.append(mido.Message(kind, note=ev.note.key_number, velocity=velocity,
                                  channel=channel, time=abs_t - last_t))
        last_t = abs_t
    mid.save(path)
    logging.debug("Wrote %d events to %s", len(events), path)

def read_timeline(path: str, beats_per_bar: int = 4) -> Tuple[Timeline, float]:
    mid = mido.MidiFile(path)
    tpb = mid.ticks_per_beat
    tempo = None
    ticks = 0
    timeline = Timeline()
    skipped = 0

    for msg in mido.merge_tracks(mid.tracks):
        ticks += msg.time
        if msg.is_meta:
            if msg.type == 'set_tempo' and tempo is None:
                tempo = msg.tempo
            continue
        if msg.type == 'note_on' and msg.velocity > 0:
            kind = EventKind.NOTE_ON
        elif msg.type == 'note_off' or (msg.type == 'note_on' and msg.velocity == 0):
            kind = EventKind.NOTE_OFF
        else:
            continue
        note = Note.from_key_number(msg.note)
        if note is None:
            skipped += 1
            continue
        timeline.add_event(ticks_to_time(ticks, tpb, beats_per_bar), kind, note)

    if skipped:
        logging.warning("%s: skipped %d notes below key 12", path, skipped)
    return timeline, mido.tempo2bpm(tempo if tempo is not None else DEFAULT_TEMPO)
