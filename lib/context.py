"""Run context passed through every cutover phase."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from lib.constants import (
    INTERFACE_SETTLE_DELAY,
    POLL_TRANSIENT_RETRIES,
    REPLICATION_POLL_INTERVAL,
    REPLICATION_POLL_TIMEOUT,
)
from lib.models import CutoverSummary


@dataclass
class RunSettings:
    """Tunables for one run."""

    poll_interval: float = REPLICATION_POLL_INTERVAL
    poll_timeout: Optional[float] = REPLICATION_POLL_TIMEOUT
    transient_retries: int = POLL_TRANSIENT_RETRIES
    settle_delay: float = INTERFACE_SETTLE_DELAY
    apply_symlink_properties: bool = False
    apply_vscan_profile: bool = False


@dataclass
class RunContext:
    """
    State shared by the phases of a single run.

    Holds the two cluster clients, the simulate/force flags and the logger.
    Every mutating call goes through mutate() so simulate mode is enforced
    in one place.
    """

    source: Any
    target: Any
    source_svm: str
    target_svm: str
    simulate: bool = False
    force: bool = False
    settings: RunSettings = field(default_factory=RunSettings)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("svm_cutover"))
    cancel_event: threading.Event = field(default_factory=threading.Event)
    summary: CutoverSummary = field(default_factory=CutoverSummary)
    performed_actions: List[str] = field(default_factory=list)
    # Set once the source CIFS service is down; failures after this need manual rollback
    source_disabled: bool = False

    def mutate(self, description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a mutating call, or only log it in simulate mode."""
        if self.simulate:
            self.logger.info("[DRY-RUN] Would %s", description)
            self.summary.planned_actions.append(description)
            return None

        self.logger.info("%s%s", description[:1].upper(), description[1:])
        result = fn(*args, **kwargs)
        self.performed_actions.append(description)
        return result

    def record_error(self, phase: str, resource: str, error: Any) -> str:
        """Log and remember an error; returns the formatted message."""
        message = f"[{phase}] {resource}: {error}"
        self.logger.error("✗ %s", message)
        self.summary.errors.append(message)
        return message

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()
