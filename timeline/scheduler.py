# timeline/scheduler.py
import logging
from math import isfinite
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Sequence, Tuple

from midi.codec import encode_event, note_off
from midi.ports import Transport
from music.note import Note
from timeline.clock import WallClock
from timeline.timeline import EventKind, ScheduledEvent, Timeline

class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    STOPPED = "stopped"

@dataclass
class PlaybackReport:
    dispatched: int = 0
    failed: int = 0
    ticks: int = 0
    stopped: bool = False

class Scheduler:
    """Walks a time-sorted event list in fixed ticks and sends each event
    through the transport when its tick window comes up.

    Tick n covers [n*tick, (n+1)*tick). Windows tile the timeline, so every
    event goes out exactly once and at most one tick late. Delivery is
    best effort: an event that fails to encode or send is logged and
    counted, never retried, and playback carries on.
    """
    def __init__(self, transport: Transport, tick: float = 0.010, clock=None,
                 channel: int = 0, velocity: int = 100):
        if tick <= 0:
            raise ValueError(f"tick must be positive, got {tick}")
        self.transport = transport
        self.tick = tick
        self.clock = clock if clock is not None else WallClock()
        self.channel = channel
        self.velocity = velocity
        self.state = SchedulerState.IDLE
        self._stop_requested = False
        # (channel, key) -> count of NoteOns not yet matched by a NoteOff
        self._sounding: Dict[Tuple[int, int], int] = {}

    def stop(self) -> None:
        """Ask a running play() to end at the next tick."""
        self._stop_requested = True

    def play_timeline(self, timeline: Timeline, bpm: float, beats_per_bar: int) -> PlaybackReport:
        return self.play(timeline.to_absolute(bpm, beats_per_bar))

    def play(self, events: Sequence[ScheduledEvent]) -> PlaybackReport:
        if self.state is SchedulerState.RUNNING:
            raise RuntimeError("Scheduler is already playing")
        events = list(events)
        total = len(events)
        report = PlaybackReport()
        self.state = SchedulerState.RUNNING
        self._stop_requested = False
        self._sounding.clear()
        logging.debug("Playback start: %d events, tick=%.4fs", total, self.tick)

        # a NaN or infinite timestamp never falls in any window
        timed = []
        for ev in events:
            if isfinite(ev.seconds):
                timed.append(ev)
            else:
                report.dispatched += 1
                report.failed += 1
                logging.warning("Dropped %s %s: timestamp %r", ev.kind.value, ev.note, ev.seconds)

        finished = False
        try:
            self.clock.reset()
            i = 0
            n = 0
            while report.dispatched < total:
                if self._stop_requested:
                    report.stopped = True
                    break
                self.clock.wait(self.tick)
                upper = (n + 1) * self.tick
                # events are sorted, so everything before `upper` not yet sent
                # belongs to window n
                while i < len(timed) and timed[i].seconds < upper:
                    self._dispatch(timed[i], report)
                    i += 1
                n += 1
                report.ticks = n
            finished = True
        finally:
            if not finished:
                self._silence()
                self.state = SchedulerState.STOPPED
                logging.warning("Playback aborted after %d/%d events", report.dispatched, total)

        if report.stopped:
            self._silence()
            self.state = SchedulerState.STOPPED
            logging.info("Playback stopped after %d/%d events", report.dispatched, total)
        else:
            self.state = SchedulerState.DONE
            logging.debug("Playback done: %d events in %d ticks (%d failed)",
                          report.dispatched, report.ticks, report.failed)
        return report

    def _dispatch(self, ev: ScheduledEvent, report: PlaybackReport) -> None:
        report.dispatched += 1
        try:
            data = encode_event(ev.kind.message, ev.note, self.channel, self.velocity)
            self.transport.send(data)
        except Exception:
            report.failed += 1
            logging.warning("Dropped %s %s at %.3fs", ev.kind.value, ev.note, ev.seconds, exc_info=True)
            return
        self._track(ev.kind, ev.note)

    def _track(self, kind: EventKind, note: Note) -> None:
        key = (self.channel, note.key_number)
        if kind is EventKind.NOTE_ON:
            self._sounding[key] = self._sounding.get(key, 0) + 1
        elif self._sounding.get(key):
            self._sounding[key] -= 1
            if not self._sounding[key]:
                del self._sounding[key]

    def _silence(self) -> None:
        for (ch, key), count in list(self._sounding.items()):
            for _ in range(count):
                try:
                    self.transport.send(note_off(key, self.velocity, ch))
                except Exception:
                    logging.warning("Could not release key %d on channel %d", key, ch, exc_info=True)
        self._sounding.clear()

    @property
    def sounding(self) -> Dict[Tuple[int, int], int]:
        return dict(self._sounding)
