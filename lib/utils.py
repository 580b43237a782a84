"""
Shared helpers: dry-run guard, phase enum, logging setup and terminal prompts.
"""

import functools
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def _resolve_flag(obj: Any, path: str) -> Any:
    for attr_name in path.split("."):
        obj = getattr(obj, attr_name, None)
        if obj is None:
            return None
    return obj


def dry_run_skip(
    message: str = "Skipping in dry-run mode",
    return_value: Any = None,
    dry_run_attr: str = "dry_run",
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Guard a cluster-mutating method so it only logs when the owner is in dry-run.

    Args:
        message: Logged after "[DRY-RUN]" together with the positional arguments
        return_value: Returned instead of calling the method
        dry_run_attr: Attribute holding the flag; dotted paths such as
                      "client.dry_run" are followed

    Example:
        @dry_run_skip(message="Would break relationship")
        def break_replication(self, destination):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            if not _resolve_flag(self, dry_run_attr):
                return func(self, *args, **kwargs)
            logging.getLogger("svm_cutover").info("[DRY-RUN] %s: %s", message, ", ".join(str(a) for a in args))
            return return_value

        return wrapper

    return decorator


class Phase(Enum):
    """Cutover phases, in execution order."""

    INIT = "init"
    DISCOVERY = "discovery"
    VALIDATION = "validation"
    SESSION_CHECK = "session_check"
    SOURCE_QUIESCE = "source_quiesce"
    REPLICATION = "replication_finalization"
    REMATERIALIZE = "configuration_rematerialization"
    IDENTITY = "identity_cutover"
    VERIFY = "post_cutover_verification"
    COMPLETED = "completed"
    FAILED = "failed"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; the cutover phase is included when a record carries one."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        phase = getattr(record, "phase", None)
        if phase:
            entry["phase"] = phase
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


# Libraries that log every retry and connection at DEBUG.
NOISY_LOGGERS = ("urllib3",)


def setup_logging(verbose: bool = False, log_format: str = "text") -> logging.Logger:
    """
    Install a single stderr handler on the root logger.

    Args:
        verbose: Log at DEBUG instead of INFO
        log_format: 'text' or 'json'

    Returns:
        The "svm_cutover" logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler()
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("svm_cutover")


def log_phase_banner(title: str, logger: logging.Logger) -> None:
    logger.info("\n" + "=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def format_duration(seconds: float) -> str:
    """Render an elapsed time as "4.2s", "3m 07s" or "1h 02m"."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


_ANSWERS = {"y": True, "yes": True, "n": False, "no": False}


def confirm_action(prompt: str, default: bool = False) -> bool:
    """Ask a yes/no question on the terminal until a usable answer arrives."""
    suffix = " [Y/n]: " if default else " [y/N]: "
    while True:
        answer = input(prompt + suffix).strip().lower()
        if not answer:
            return default
        if answer in _ANSWERS:
            return _ANSWERS[answer]
        print("Please answer 'y' or 'n'")
