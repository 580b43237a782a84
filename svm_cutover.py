#!/usr/bin/env python3
"""
SVM Cutover Automation Script

Fails a CIFS/SMB file service over from a source ONTAP SVM to a target SVM:
finalizes and breaks the volume replication between them, recreates the
share configuration on the target and moves the client-facing addresses.

Features:
- Interface and replication discovery with explicit overrides
- Pre-flight validation before any change
- Dry-run mode that logs every planned change
- Idempotent share and ACL rematerialization (safe to re-run)
- Configuration export (--export-config) for a later cutover
- Manual rollback guidance when a run stops after the source goes down
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from lib import (
    OntapClient,
    RunContext,
    RunSettings,
    __version__,
    __version_date__,
    setup_logging,
)
from lib.config import load_config_file, merge_config, resolve_credentials
from lib.constants import (
    EXIT_FAILURE,
    EXIT_INTERRUPT,
    EXIT_ROLLBACK_REQUIRED,
    EXIT_SUCCESS,
    INTERFACE_SETTLE_DELAY,
    POLL_TRANSIENT_RETRIES,
    REPLICATION_POLL_INTERVAL,
    REQUEST_TIMEOUT,
    SOURCE_PASSWORD_ENV_VAR,
    SOURCE_USERNAME_ENV_VAR,
    TARGET_PASSWORD_ENV_VAR,
    TARGET_USERNAME_ENV_VAR,
)
from lib.exceptions import ConfigurationError, CutoverError, ValidationError
from lib.snapshot import load_snapshot
from lib.utils import confirm_action
from lib.validation import InputValidator
from modules import ConfigurationExporter, CutoverOrchestrator, RollbackGuide


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="SVM CIFS Cutover Automation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate only (no changes)
  %(prog)s --validate-only --source-host cluster-a --source-svm svm_prod --target-host cluster-b --target-svm svm_dr

  # Dry-run to see planned actions
  %(prog)s --dry-run --config cutover.yaml --snapshot-dir ./snapshot

  # Execute cutover with explicit interface pairs
  %(prog)s --config cutover.yaml --interface-pair lif_cifs1:lif_dr1 --interface-pair lif_cifs2:lif_dr2

  # Export the source configuration for later
  %(prog)s --source-host cluster-a --source-svm svm_prod --export-config ./snapshot
        """,
    )

    # Cluster arguments (default None so --config can fill them)
    parser.add_argument("--config", help="YAML run configuration file; command line options override it")
    parser.add_argument("--source-host", help="Source cluster management host")
    parser.add_argument("--source-svm", help="Source SVM name")
    parser.add_argument("--source-username", help=f"Source cluster user (or ${SOURCE_USERNAME_ENV_VAR})")
    parser.add_argument("--target-host", help="Target cluster management host")
    parser.add_argument("--target-svm", help="Target SVM name")
    parser.add_argument("--target-username", help=f"Target cluster user (or ${TARGET_USERNAME_ENV_VAR})")
    parser.add_argument(
        "--no-verify-ssl",
        action="store_true",
        help="Do not verify cluster TLS certificates",
    )

    # Operation mode
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        help="Run discovery and validation only, make no changes",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Show planned actions without executing them",
    )
    mode_group.add_argument(
        "--export-config",
        metavar="DIR",
        help="Write the source SVM share configuration to DIR and exit",
    )

    # Inputs
    parser.add_argument(
        "--snapshot-dir",
        help="Configuration snapshot directory (shares.json, acls.json, volumes.json); "
        "the live source configuration is captured when omitted",
    )
    parser.add_argument(
        "--interface-pair",
        dest="interface_pairs",
        action="append",
        metavar="SRC:TGT",
        help="Source and target interface names; repeat per pair (default: discover)",
    )
    parser.add_argument(
        "--relationship",
        dest="relationships",
        action="append",
        metavar="SVM:VOLUME",
        help="Replication destination to finalize; repeat per volume (default: discover)",
    )

    # Behavior
    parser.add_argument(
        "--force",
        action="store_true",
        help="Continue despite active sessions and failed relationships",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; passwords must come from the environment",
    )
    parser.add_argument(
        "--apply-symlink-properties",
        action="store_true",
        default=None,
        help="Apply exported symlink properties on the target (default: report only)",
    )
    parser.add_argument(
        "--apply-vscan-profile",
        action="store_true",
        default=None,
        help="Apply exported vscan profiles on the target (default: report only)",
    )

    # Tuning
    parser.add_argument(
        "--poll-interval",
        type=float,
        help=f"Seconds between replication status reads (default: {REPLICATION_POLL_INTERVAL})",
    )
    parser.add_argument(
        "--poll-timeout",
        type=float,
        help="Give up waiting for a replication transfer after this many seconds (default: wait)",
    )
    parser.add_argument(
        "--settle-delay",
        type=float,
        help=f"Seconds to wait before re-reading an interface (default: {INTERFACE_SETTLE_DELAY})",
    )
    parser.add_argument(
        "--request-timeout",
        type=int,
        help=f"Per-request timeout in seconds (default: {REQUEST_TIMEOUT})",
    )
    parser.add_argument(
        "--transient-retries",
        type=int,
        help=f"Consecutive transient read failures tolerated while polling (default: {POLL_TRANSIENT_RETRIES})",
    )

    # Logging
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (text or json)",
    )

    return parser.parse_args(argv)


def load_and_validate_args(args: argparse.Namespace, logger: logging.Logger) -> argparse.Namespace:
    """Merge the config file and validate the resulting options."""
    try:
        if args.config:
            InputValidator.validate_safe_filesystem_path(args.config, "config")
            merge_config(args, load_config_file(args.config))
        InputValidator.validate_all_cli_args(args)
    except (ValidationError, ConfigurationError) as e:
        logger.error("Validation error: %s", str(e))
        sys.exit(EXIT_FAILURE)

    return args


def build_settings(args: argparse.Namespace) -> RunSettings:
    defaults = RunSettings()
    return RunSettings(
        poll_interval=args.poll_interval if args.poll_interval is not None else defaults.poll_interval,
        poll_timeout=args.poll_timeout if args.poll_timeout is not None else defaults.poll_timeout,
        transient_retries=(
            args.transient_retries if args.transient_retries is not None else defaults.transient_retries
        ),
        settle_delay=args.settle_delay if args.settle_delay is not None else defaults.settle_delay,
        apply_symlink_properties=bool(args.apply_symlink_properties),
        apply_vscan_profile=bool(args.apply_vscan_profile),
    )


def _create_client(
    args: argparse.Namespace, side: str, logger: logging.Logger, read_only: bool = False
) -> OntapClient:
    """
    Create a cluster client for one side using CLI, config and environment.

    A read_only client logs and skips every mutating call, whoever makes it.
    Export and --validate-only sessions are opened this way.
    """
    username_env, password_env = {
        "source": (SOURCE_USERNAME_ENV_VAR, SOURCE_PASSWORD_ENV_VAR),
        "target": (TARGET_USERNAME_ENV_VAR, TARGET_PASSWORD_ENV_VAR),
    }[side]

    host = getattr(args, f"{side}_host")
    username, password = resolve_credentials(
        side,
        getattr(args, f"{side}_username", None),
        username_env,
        password_env,
        interactive=not args.non_interactive,
    )

    verify_ssl = getattr(args, f"{side}_verify_ssl", None)
    verify_ssl = not args.no_verify_ssl and (True if verify_ssl is None else bool(verify_ssl))
    if not verify_ssl:
        logger.warning("TLS certificate verification disabled for %s cluster %s", side, host)

    return OntapClient(
        host,
        username,
        password,
        verify_ssl=verify_ssl,
        request_timeout=args.request_timeout or REQUEST_TIMEOUT,
        dry_run=bool(args.dry_run) or read_only,
    )


def _parse_pairs(values: Optional[List[str]]) -> Optional[List[Tuple[str, str]]]:
    if not values:
        return None
    return [InputValidator.parse_interface_pair(v) for v in values]


def run_export(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Capture the source configuration to a snapshot directory."""
    client = _create_client(args, "source", logger, read_only=True)
    try:
        client.connect()
        ConfigurationExporter(client, args.source_svm).export(args.export_config)
    finally:
        client.disconnect()

    logger.info("\n✓ Configuration of %s exported to %s", args.source_svm, args.export_config)
    return EXIT_SUCCESS


def run_cutover(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Run a cutover and map its outcome to an exit code."""
    snapshot = load_snapshot(args.snapshot_dir) if args.snapshot_dir else None
    read_only = bool(args.validate_only)

    ctx = RunContext(
        source=_create_client(args, "source", logger, read_only),
        target=_create_client(args, "target", logger, read_only),
        source_svm=args.source_svm,
        target_svm=args.target_svm,
        simulate=bool(args.dry_run),
        force=bool(args.force),
        settings=build_settings(args),
        logger=logger,
    )

    orchestrator = CutoverOrchestrator(
        ctx,
        snapshot=snapshot,
        interface_pairs=_parse_pairs(args.interface_pairs),
        relationships=args.relationships,
        confirm=None if args.non_interactive else confirm_action,
        validate_only=bool(args.validate_only),
    )

    try:
        summary = orchestrator.run()
    except KeyboardInterrupt:
        ctx.cancel_event.set()
        logger.warning("\n\nOperation interrupted by user")
        if ctx.source_disabled:
            RollbackGuide(ctx).log_steps(orchestrator.plan, orchestrator.rematerializer.created_shares)
        return EXIT_INTERRUPT
    except Exception as exc:
        if not ctx.source_disabled:
            raise
        logger.error("\n✗ Unexpected error: %s", exc, exc_info=args.verbose)
        RollbackGuide(ctx).log_steps(orchestrator.plan, orchestrator.rematerializer.created_shares)
        return EXIT_ROLLBACK_REQUIRED

    if summary.succeeded:
        if args.dry_run:
            logger.info("\n✓ Dry-run complete: %s action(s) planned", len(summary.planned_actions))
        elif not args.validate_only:
            logger.info("\n" + "=" * 60)
            logger.info("CUTOVER COMPLETED SUCCESSFULLY!")
            logger.info("=" * 60)
            logger.info("\nNext steps:")
            logger.info("  1. Update DNS records that point at the old addresses if they changed")
            logger.info("  2. Verify client access to the shares on %s", ctx.target_svm)
            logger.info("  3. Remove or re-purpose the source SVM %s", ctx.source_svm)
        return EXIT_SUCCESS

    if ctx.source_disabled:
        return EXIT_ROLLBACK_REQUIRED
    return EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    # Set up logging early so argument validation can use the logger
    logger = setup_logging(args.verbose, args.log_format)
    load_and_validate_args(args, logger)

    logger.info("SVM Cutover Automation v%s (%s)", __version__, __version_date__)
    logger.info("Started at: %s", datetime.now(timezone.utc).isoformat())

    try:
        if args.export_config:
            exit_code = run_export(args, logger)
        else:
            exit_code = run_cutover(args, logger)
    except KeyboardInterrupt:
        logger.warning("\n\nOperation interrupted by user")
        sys.exit(EXIT_INTERRUPT)
    except CutoverError as exc:
        logger.error("\n✗ %s", exc)
        sys.exit(EXIT_FAILURE)
    except Exception as exc:
        logger.error("\n✗ Unexpected error: %s", exc, exc_info=args.verbose)
        sys.exit(EXIT_FAILURE)

    if exit_code == EXIT_SUCCESS:
        logger.info("\n✓ Operation completed successfully!")
    elif exit_code == EXIT_ROLLBACK_REQUIRED:
        logger.error("\n✗ Cutover failed after the source service was disabled; follow the rollback steps above")
    elif exit_code != EXIT_INTERRUPT:
        logger.error("\n✗ Operation failed!")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
