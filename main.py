# main.py
import sys, os
sys.path.append(os.path.dirname(__file__))  # keep top-level packages importable when run as a script

import argparse
import logging
import traceback

from config import AppConfig, PlaybackConfig, MidiConfig, LogConfig
from utils.logs import init_logging, setup_crashlog, log_exception
from music.note import Note
from music.time import Duration, Time
from timeline.timeline import Timeline

def build_arpeggio(names, start: Time = Time(1, 4, 1), step: Duration = Duration(4, 1),
                   length: Duration = Duration(16, 1)) -> Timeline:
    """One note per step, each held for `length`."""
    tl = Timeline()
    t = start
    for name in names:
        tl.add_note(Note.parse(name), t, length)
        t = t + step
    return tl

def cmd_play(cfg: AppConfig, notes):
    from midi.ports import MidiOutput
    from timeline.scheduler import Scheduler

    pb = cfg.playback
    tl = build_arpeggio(notes)
    with MidiOutput(cfg.midi.output_id) as out:
        sched = Scheduler(out, tick=pb.tick, channel=pb.channel, velocity=pb.velocity)
        report = sched.play_timeline(tl, pb.bpm, pb.beats_per_bar)
    logging.info("Played %d events (%d failed)", report.dispatched, report.failed)

def cmd_monitor(cfg: AppConfig):
    from midi.ports import MidiInput, Receiver

    with MidiInput(cfg.midi.input_id) as inp:
        rx = Receiver(inp, print, poll_interval=cfg.midi.poll_ms / 1000.0)
        print("Ctrl+C to stop.")
        try:
            rx.run()
        except KeyboardInterrupt:
            rx.stop()
    logging.info("Received %d messages", rx.received)

def cmd_export(cfg: AppConfig, path: str, notes):
    from midi.midifile import write_timeline

    pb = cfg.playback
    write_timeline(build_arpeggio(notes), path, bpm=pb.bpm, beats_per_bar=pb.beats_per_bar,
                   channel=pb.channel, velocity=pb.velocity)
    logging.info("Exported %s", path)

def parse_args(argv=None):
    ap = argparse.ArgumentParser(prog="barline")
    ap.add_argument('--bpm', type=float, default=120.0)
    ap.add_argument('--beats_per_bar', type=int, default=4)
    ap.add_argument('--tick_ms', type=int, default=10)
    ap.add_argument('--channel', type=int, default=0, choices=range(16))
    ap.add_argument('--velocity', type=int, default=100)
    ap.add_argument('--output_id', type=int, default=None)
    ap.add_argument('--input_id', type=int, default=None)
    ap.add_argument('--log_level', default='INFO')
    sub = ap.add_subparsers(dest='cmd', required=True)
    p = sub.add_parser('play')
    p.add_argument('notes', nargs='+')
    sub.add_parser('monitor')
    e = sub.add_parser('export')
    e.add_argument('path')
    e.add_argument('notes', nargs='+')
    return ap.parse_args(argv)

def config_from_args(args) -> AppConfig:
    return AppConfig(
        playback=PlaybackConfig(bpm=args.bpm, beats_per_bar=args.beats_per_bar,
                                tick_ms=args.tick_ms, channel=args.channel, velocity=args.velocity),
        midi=MidiConfig(output_id=args.output_id, input_id=args.input_id),
        log=LogConfig(level=args.log_level),
    )

def main(argv=None):
    args = parse_args(argv)
    cfg = config_from_args(args)
    init_logging(cfg.log)
    if args.cmd == 'play':
        cmd_play(cfg, args.notes)
    elif args.cmd == 'monitor':
        cmd_monitor(cfg)
    elif args.cmd == 'export':
        cmd_export(cfg, args.path, args.notes)

if __name__ == '__main__':
    setup_crashlog()
    try:
        main()
    except Exception as e:
        log_exception("Top-level exception", e)
        logging.error("Unhandled exception: %s", e, exc_info=True)
        print("Something went wrong, see logs/ for app.log and error-*.txt")
        traceback.print_exc()
        sys.exit(1)
