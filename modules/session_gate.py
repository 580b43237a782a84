"""Active client session check before the source CIFS service goes down."""

from typing import Callable, Optional

from lib.context import RunContext
from lib.exceptions import CutoverCancelledError, PreconditionError

ConfirmFn = Callable[[str], bool]

MAX_SESSIONS_LISTED = 10


def check_active_sessions(ctx: RunContext, confirm: Optional[ConfirmFn] = None) -> int:
    """
    Make sure disabling the source service will not silently drop clients.

    Args:
        ctx: Run context
        confirm: Asks the operator to continue; None means non-interactive

    Returns:
        Number of active sessions found

    Raises:
        PreconditionError: Sessions exist, no force flag and no way to ask
        CutoverCancelledError: The operator declined
    """
    sessions = ctx.source.list_sessions(ctx.source_svm)
    if not sessions:
        ctx.logger.info("No active CIFS sessions on %s", ctx.source_svm)
        return 0

    ctx.logger.warning("%s active CIFS session(s) on %s:", len(sessions), ctx.source_svm)
    for session in sessions[:MAX_SESSIONS_LISTED]:
        ctx.logger.warning("  %s from %s", session.user or "unknown user", session.client_address or "unknown")
    if len(sessions) > MAX_SESSIONS_LISTED:
        ctx.logger.warning("  ... and %s more", len(sessions) - MAX_SESSIONS_LISTED)

    if ctx.force:
        ctx.logger.warning("Continuing despite active sessions (--force)")
        return len(sessions)
    if ctx.simulate:
        ctx.logger.info("[DRY-RUN] Sessions would be dropped when the CIFS service is disabled")
        return len(sessions)

    if confirm is None:
        raise PreconditionError(
            f"[session_check] {ctx.source_svm}: {len(sessions)} active session(s); "
            "use --force to disconnect them in non-interactive mode"
        )

    if not confirm(f"\nDisable CIFS on {ctx.source_svm} and drop {len(sessions)} active session(s)?"):
        raise CutoverCancelledError(f"[session_check] {ctx.source_svm}: cutover cancelled by operator")

    return len(sessions)
