"""Terminal output for tasklink commands."""

import os
import sys

from ..models import SyncPhase, SyncProgress, SyncRunSummary

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
DIM = "\033[2m"
RESET = "\033[0m"

PHASE_MARKS = {
    SyncPhase.CREATING: ("+", GREEN),
    SyncPhase.UPDATING: ("\u21bb", YELLOW),  # ↻
    SyncPhase.SKIPPED: ("\u2219", DIM),  # ∙
}


def _supports_color() -> bool:
    """Color only on a TTY, and never when NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def colorize(text: str, color: str) -> str:
    if _supports_color():
        return f"{color}{text}{RESET}"
    return text


def _emit(mark: str, color: str, message: str) -> None:
    print(f"{colorize(mark, color)} {message}")


def success(message: str) -> None:
    _emit("\u2713", GREEN, message)  # ✓


def info(message: str) -> None:
    _emit("\u2022", YELLOW, message)  # •


def warning(message: str) -> None:
    _emit("!", YELLOW, message)


def error(message: str) -> None:
    _emit("\u2717", RED, message)  # ✗


def header(message: str) -> None:
    print(colorize(message, BLUE))


def progress(event: SyncProgress) -> None:
    """Print one line per decided task; ``checking`` events are silent."""
    if event.phase not in PHASE_MARKS:
        return
    mark = colorize(*PHASE_MARKS[event.phase])
    print(f"  [{event.index}/{event.total}] {mark} {event.task.name}")


def summary_line(summary: SyncRunSummary) -> str:
    """Counts for one provider run, e.g. ``2 created, 0 updated, 5 unchanged``."""
    parts = [
        f"{summary.created_count} created",
        f"{summary.updated_count} updated",
        f"{summary.skipped_count} unchanged",
    ]
    if summary.pulled_count:
        parts.append(f"{summary.pulled_count} pulled")
    if summary.failed_count:
        parts.append(f"{summary.failed_count} failed")
    return ", ".join(parts)
