# utils/logs.py
import datetime
import faulthandler
import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import LogConfig

FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_fault_file = None

def log_dir(base: Optional[str] = None) -> str:
    d = os.path.join(base or os.getcwd(), "logs")
    os.makedirs(d, exist_ok=True)
    return d

def _new_log_path(prefix: str, base: Optional[str] = None) -> str:
    stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    return os.path.join(log_dir(base), f"{prefix}-{stamp}.txt")

def init_logging(cfg: Optional[LogConfig] = None, base: Optional[str] = None) -> str:
    """Console + rotating logs/app.log. Does nothing if the root logger is
    already configured. Returns the log file path."""
    cfg = cfg or LogConfig()
    log_path = os.path.join(log_dir(base), "app.log")
    root = logging.getLogger()
    if root.handlers:
        return log_path

    level = getattr(logging, cfg.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=FORMAT, encoding="utf-8")
    fh = RotatingFileHandler(log_path, maxBytes=cfg.max_bytes,
                             backupCount=cfg.backup_count, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(FORMAT))
    root.addHandler(fh)
    return log_path

def setup_crashlog(base: Optional[str] = None):
    """Native crashes -> native-*.txt, uncaught exceptions -> crash-*.txt."""
    global _fault_file
    if _fault_file is None:
        _fault_file = open(_new_log_path("native", base), "w", encoding="utf-8")
    faulthandler.enable(_fault_file, all_threads=True)

    def _hook(exc_type, exc, tb):
        try:
            with open(_new_log_path("crash", base), "w", encoding="utf-8") as out:
                out.write("UNCAUGHT EXCEPTION\n")
                out.write("=" * 60 + "\n")
                traceback.print_exception(exc_type, exc, tb, file=out)
        finally:
            sys.__excepthook__(exc_type, exc, tb)
    sys.excepthook = _hook

def log_exception(title: str, exc: BaseException, base: Optional[str] = None) -> str:
    path = _new_log_path("error", base)
    with open(path, "w", encoding="utf-8") as out:
        out.write(f"[{title}] {type(exc).__name__}: {exc}\n")
        out.write("Traceback:\n")
        out.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return path
