# midi/ports.py
import logging
import time
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

import pygame.midi

from midi.codec import RawMessage, WireMessage, data_length

class SendError(OSError):
    pass

class Transport(Protocol):
    def send(self, data: bytes) -> None: ...

class MidiInputSource(Protocol):
    def poll(self) -> List[Tuple[int, bytes]]: ...

def _init_midi():
    if not pygame.midi.get_init():
        pygame.midi.init()

class MidiOutput:
    """
    System MIDI out through pygame.midi.
    - send(bytes) writes one 1-3 byte frame
    - device_id=None uses the default output device
    """
    def __init__(self, device_id: Optional[int] = None):
        _init_midi()
        dev = pygame.midi.get_default_output_id() if device_id is None else device_id
        if dev is None or dev < 0:
            raise SendError("No MIDI output device found")
        try:
            self._out = pygame.midi.Output(dev)
        except pygame.midi.MidiException as e:
            raise SendError(f"Could not open MIDI output {dev}: {e}") from e
        self.device_id = dev
        logging.info("Using MIDI out device %d", dev)

    def send(self, data: bytes) -> None:
        if self._out is None:
            raise SendError("MIDI output is closed")
        frame = bytes(data)
        if not 1 <= len(frame) <= 3:
            raise SendError(f"Expected a 1-3 byte frame, got {len(frame)} bytes")
        padded = frame + bytes(3 - len(frame))
        try:
            self._out.write_short(padded[0], padded[1], padded[2])
        except pygame.midi.MidiException as e:
            raise SendError(str(e)) from e

    def all_notes_off(self):
        # CC 0x7B on every channel
        for ch in range(16):
            self.send(bytes([0xB0 | ch, 0x7B, 0]))

    def close(self):
        if self._out is None:
            return
        try:
            self.all_notes_off()
        except SendError:
            logging.warning("All-notes-off failed while closing", exc_info=True)
        self._out.close()
        self._out = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

def split_packets(events: Sequence) -> List[Tuple[int, bytes]]:
    """pygame.midi packets ([[status, d1, d2, d3], timestamp]) -> (timestamp, frame).
    Each frame is cut to the length its status byte calls for."""
    out: List[Tuple[int, bytes]] = []
    for packet in events:
        try:
            raw, stamp = packet[0], int(packet[1])
            status = raw[0]
            frame = bytes(b & 0xFF for b in raw[: 1 + data_length(status)])
        except (TypeError, ValueError, IndexError):
            logging.debug("Skipping malformed input packet: %r", packet)
            continue
        out.append((stamp, frame))
    return out

class MidiInput:
    def __init__(self, device_id: Optional[int] = None, buffer_size: int = 64):
        _init_midi()
        dev = pygame.midi.get_default_input_id() if device_id is None else device_id
        if dev is None or dev < 0:
            raise OSError("No MIDI input device found")
        try:
            self._in = pygame.midi.Input(dev)
        except pygame.midi.MidiException as e:
            raise OSError(f"Could not open MIDI input {dev}: {e}") from e
        self.device_id = dev
        self.buffer_size = buffer_size
        logging.info("Using MIDI in device %d", dev)

    def poll(self) -> List[Tuple[int, bytes]]:
        if self._in is None or not self._in.poll():
            return []
        return split_packets(self._in.read(self.buffer_size))

    def close(self):
        if self._in is not None:
            self._in.close()
            self._in = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

class Receiver:
    """Pulls raw frames from an input source, decodes them and hands each
    WireMessage to on_message. Garbage input decodes to Unknown; a failing
    callback is logged and the loop keeps going."""
    def __init__(self, source: MidiInputSource, on_message: Callable[[WireMessage], None],
                 poll_interval: float = 0.001, sleep: Callable[[float], None] = time.sleep):
        self.source = source
        self.on_message = on_message
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.received = 0
        self._running = False

    def pump(self) -> int:
        n = 0
        for stamp, frame in self.source.poll():
            msg = RawMessage.from_bytes(stamp, frame).parse()
            self.received += 1
            n += 1
            try:
                self.on_message(msg)
            except Exception:
                logging.exception("Message handler failed for %s", msg)
        return n

    def run(self, until: Optional[Callable[[], bool]] = None) -> int:
        self._running = True
        while self._running and not (until and until()):
            if not self.pump():
                self.sleep(self.poll_interval)
        self._running = False
        return self.received

    def stop(self):
        self._running = False
