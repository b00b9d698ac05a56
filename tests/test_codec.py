from __future__ import annotations

import pytest

from midi.codec import (
    Data,
    DataKind,
    MessageKind,
    RawMessage,
    data_length,
    decode,
    encode_chord,
    encode_event,
    encode_note,
    note_off,
    note_on,
)
from music.note import Chord, Note


@pytest.mark.parametrize(
    "status, kind, fields",
    [
        (0x80, MessageKind.NoteOff, (DataKind.KeyNumber, DataKind.Velocity)),
        (0x93, MessageKind.NoteOn, (DataKind.KeyNumber, DataKind.Velocity)),
        (0xA5, MessageKind.PolyphonicKeyPressure, (DataKind.KeyNumber, DataKind.PressureAmount)),
        (0xEF, MessageKind.PitchBend, (DataKind.MSB, DataKind.LSB)),
    ],
)
def test_two_byte_channel_voice(status, kind, fields):
    msg = decode(status, [60, 99])
    assert msg.kind is kind
    assert msg.channel == status & 0x0F
    assert msg.payload == (Data(fields[0], 60), Data(fields[1], 99))


def test_program_change_and_channel_pressure():
    pc = decode(0xC2, [17])
    assert (pc.channel, pc.kind, pc.payload) == (2, MessageKind.ProgramChange,
                                                 (Data(DataKind.ProgramNumber, 17),))
    cp = decode(0xDA, [64])
    assert (cp.channel, cp.kind, cp.payload) == (10, MessageKind.ChannelPressure,
                                                 (Data(DataKind.PressureValue, 64),))


def test_control_change_generic():
    msg = decode(0xB4, [7, 100])
    assert msg.kind is MessageKind.ControlChange
    assert msg.channel == 4
    assert msg.payload == (Data(DataKind.ControllerNumber, 7), Data(DataKind.ControllerValue, 100))


@pytest.mark.parametrize(
    "controller, data_kind",
    [
        (0x79, DataKind.ResetAllControllers),
        (0x7B, DataKind.AllNotesOff),
        (0x7C, DataKind.OmniModeOff),
        (0x7D, DataKind.OmniModeOn),
        (0x7E, DataKind.MonoModeOn),
        (0x7F, DataKind.PolyModeOn),
    ],
)
def test_control_change_channel_mode(controller, data_kind):
    msg = decode(0xB0, [controller, 0])
    assert msg.kind is MessageKind.ControlChange
    assert msg.channel is None
    assert msg.payload == (Data(data_kind),)


def test_control_change_local_control_carries_value():
    msg = decode(0xB1, [0x7A, 127])
    assert msg.channel is None
    assert msg.payload == (Data(DataKind.LocalControl, 127),)


@pytest.mark.parametrize(
    "status, kind, data, payload",
    [
        (0xF1, MessageKind.MidiTimingCode, [0x23], (Data(DataKind.Generic, 0x23),)),
        (0xF2, MessageKind.SongPositionPointer, [1, 2],
         (Data(DataKind.Generic, 1), Data(DataKind.Generic, 2))),
        (0xF3, MessageKind.SongSelect, [5], (Data(DataKind.Generic, 5),)),
        (0xF6, MessageKind.TuneRequest, [], ()),
        (0xF8, MessageKind.TimingClock, [], ()),
        (0xFA, MessageKind.StartSequence, [], ()),
        (0xFB, MessageKind.ContinueSequence, [], ()),
        (0xFC, MessageKind.StopSequence, [], ()),
        (0xFE, MessageKind.ActiveSensing, [], ()),
        (0xFF, MessageKind.SystemReset, [], ()),
    ],
)
def test_system_messages(status, kind, data, payload):
    msg = decode(status, data)
    assert msg.kind is kind
    assert msg.channel is None
    assert msg.payload == payload


@pytest.mark.parametrize("status", [0x00, 0x12, 0x7F, 0xF0, 0xF4, 0xF5, 0xF7, 0xF9, 0xFD])
def test_unrecognised_status_is_unknown(status):
    msg = decode(status, [1, 2])
    assert msg.kind is MessageKind.Unknown
    assert msg.channel is None
    assert msg.payload == ()


@pytest.mark.parametrize(
    "status, data",
    [
        (0x90, []),            # missing both data bytes
        (0x90, [60]),          # missing velocity
        (0xB0, [0x7A]),        # channel mode without value
        (0xF2, [1]),           # short song position
        (0x90, [200, 10]),     # data byte with the high bit set
        (0x90, [-1, 10]),
        (0x90, ["a", "b"]),
        (256, [1, 2]),
        (-5, [1, 2]),
        (None, [1, 2]),
        ("9", [1, 2]),
        (0x90, None),
        (0x90, 12),
    ],
)
def test_malformed_input_never_raises(status, data):
    msg = decode(status, data)
    assert msg.kind is MessageKind.Unknown
    assert msg.payload == ()


def test_extra_data_bytes_are_ignored():
    msg = decode(0xC0, [3, 99, 99])
    assert msg.payload == (Data(DataKind.ProgramNumber, 3),)


def test_data_length():
    assert data_length(0x90) == 2
    assert data_length(0xB0) == 2
    assert data_length(0xC7) == 1
    assert data_length(0xF2) == 2
    assert data_length(0xF8) == 0
    assert data_length(0x40) == 0
    assert data_length(999) == 0


def test_raw_message_parse_keeps_stamp():
    msg = RawMessage.from_bytes(1234, bytes([0x91, 60, 80])).parse()
    assert msg.stamp == 1234
    assert msg.kind is MessageKind.NoteOn
    assert msg.note == Note.parse("C4")
    assert "C4" in str(msg)


def test_raw_message_empty_frame_is_unknown():
    assert RawMessage.from_bytes(0, b"").parse().kind is MessageKind.Unknown


def test_message_str_without_note():
    text = str(decode(0xF8))
    assert "TimingClock" in text
    assert "No:" not in text


def test_encode_note_bytes():
    on, off = encode_note(Note.parse("A3"), channel=2, velocity=90)
    assert on == bytes([0x92, 57, 90])
    assert off == bytes([0x82, 57, 90])


def test_encode_chord_all_on_then_all_off():
    chord = Chord.parse(["C4", "E4", "G4"])
    ons, offs = encode_chord(chord, velocity=64)
    assert ons == (bytes([0x90, 60, 64]), bytes([0x90, 64, 64]), bytes([0x90, 67, 64]))
    assert offs == (bytes([0x80, 60, 64]), bytes([0x80, 64, 64]), bytes([0x80, 67, 64]))


def test_encode_event_rejects_other_kinds():
    with pytest.raises(ValueError):
        encode_event(MessageKind.ProgramChange, Note.parse("C4"))


@pytest.mark.parametrize(
    "kwargs",
    [dict(key=128), dict(key=-1), dict(key=60, velocity=128), dict(key=60, channel=16)],
)
def test_encode_out_of_range(kwargs):
    with pytest.raises(ValueError):
        note_on(**kwargs)


def test_encode_note_above_key_range():
    with pytest.raises(ValueError):
        encode_note(Note.parse("B9"))


def test_note_on_off_round_trip():
    for channel in range(16):
        for key in range(128):
            for velocity in (0, 1, 64, 127):
                for build, kind in ((note_on, MessageKind.NoteOn), (note_off, MessageKind.NoteOff)):
                    frame = build(key, velocity, channel)
                    msg = decode(frame[0], frame[1:])
                    assert msg.kind is kind
                    assert msg.channel == channel
                    assert msg.payload[0] == Data(DataKind.KeyNumber, key)


def test_frames_match_mido():
    mido = pytest.importorskip("mido")
    assert note_on(64, 100, 9) == bytes(mido.Message("note_on", note=64, velocity=100, channel=9).bytes())
    assert note_off(64, 0, 0) == bytes(mido.Message("note_off", note=64, velocity=0, channel=0).bytes())
    for m in (
        mido.Message("control_change", channel=3, control=7, value=90),
        mido.Message("pitchwheel", channel=1, pitch=1000),
        mido.Message("songpos", pos=300),
        mido.Message("program_change", channel=5, program=12),
    ):
        raw = m.bytes()
        assert decode(raw[0], raw[1:]).kind is not MessageKind.Unknown
