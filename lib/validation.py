"""
Input validation for SVM cutover.

ONTAP object names, addresses and netmasks, cluster hosts, interface pair
and replication destination syntax, and local snapshot/export paths.
"""

import ipaddress
import os
import re
from typing import Pattern, Tuple

from lib.exceptions import SecurityValidationError, ValidationError

# SVM (vserver) names: letters, digits, '-', '_', '.'; must start with a letter or digit
SVM_NAME_PATTERN: Pattern[str] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")
SVM_NAME_MAX_LENGTH = 47

# Volume names: start with a letter or underscore, then letters, digits, underscores
VOLUME_NAME_PATTERN: Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
VOLUME_NAME_MAX_LENGTH = 203

# Interface names allow the same characters as SVM names
INTERFACE_NAME_PATTERN: Pattern[str] = SVM_NAME_PATTERN
INTERFACE_NAME_MAX_LENGTH = 251

# CIFS share names cannot contain these characters
SHARE_NAME_FORBIDDEN_CHARS = set('"/\\[]:|<>+=;,?*')
SHARE_NAME_MAX_LENGTH = 256

# Host names (RFC 1123)
HOSTNAME_PATTERN: Pattern[str] = re.compile(
    r"^(?=.{1,253}$)[A-Za-z0-9]([A-Za-z0-9\-]{0,61}[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9\-]{0,61}[A-Za-z0-9])?)*$"
)

LOG_FORMATS = ("text", "json")

# Shell metacharacters never needed in a snapshot or export path
UNSAFE_PATH_CHARS = set("~${}|&;<>`")


class InputValidator:
    """Input validation for SVM cutover."""

    @staticmethod
    def _validate_name(value: str, pattern: Pattern[str], max_length: int, kind: str, rule: str) -> None:
        if not value:
            raise ValidationError(f"{kind} name cannot be empty")

        if len(value) > max_length:
            raise ValidationError(f"{kind} name '{value}' exceeds maximum length of {max_length} characters")

        if not pattern.match(value):
            raise ValidationError(f"Invalid {kind} name '{value}'. {rule}")

    @staticmethod
    def validate_svm_name(name: str) -> None:
        """
        Validate an SVM (vserver) name.

        Raises:
            ValidationError: If name is invalid
        """
        InputValidator._validate_name(
            name,
            SVM_NAME_PATTERN,
            SVM_NAME_MAX_LENGTH,
            "SVM",
            "Must consist of alphanumeric characters, '-', '_' or '.', and start with an alphanumeric character",
        )

    @staticmethod
    def validate_volume_name(name: str) -> None:
        """
        Validate a FlexVol volume name.

        Raises:
            ValidationError: If name is invalid
        """
        InputValidator._validate_name(
            name,
            VOLUME_NAME_PATTERN,
            VOLUME_NAME_MAX_LENGTH,
            "volume",
            "Must consist of alphanumeric characters or '_', and start with a letter or '_'",
        )

    @staticmethod
    def validate_interface_name(name: str) -> None:
        """Validate a logical interface name."""
        InputValidator._validate_name(
            name,
            INTERFACE_NAME_PATTERN,
            INTERFACE_NAME_MAX_LENGTH,
            "interface",
            "Must consist of alphanumeric characters, '-', '_' or '.', and start with an alphanumeric character",
        )

    @staticmethod
    def validate_share_name(name: str) -> None:
        """
        Validate a CIFS share name.

        Raises:
            ValidationError: If name is invalid
        """
        if not name or not name.strip():
            raise ValidationError("share name cannot be empty")

        if len(name) > SHARE_NAME_MAX_LENGTH:
            raise ValidationError(f"share name '{name}' exceeds maximum length of {SHARE_NAME_MAX_LENGTH} characters")

        bad = sorted(set(name) & SHARE_NAME_FORBIDDEN_CHARS)
        if bad:
            raise ValidationError(f"Invalid share name '{name}'. Contains forbidden characters: {' '.join(bad)}")

    @staticmethod
    def validate_ip_address(address: str, field_name: str = "address") -> None:
        """Validate an IPv4 or IPv6 address."""
        try:
            ipaddress.ip_address(address)
        except ValueError:
            raise ValidationError(f"Invalid {field_name} '{address}'")

    @staticmethod
    def validate_netmask(netmask: str) -> None:
        """
        Validate a netmask in dotted form or as a prefix length.

        Raises:
            ValidationError: If netmask is invalid
        """
        if not netmask:
            raise ValidationError("netmask cannot be empty")

        try:
            if netmask.isdigit():
                length = int(netmask)
                if not 0 <= length <= 128:
                    raise ValueError(netmask)
            else:
                ipaddress.IPv4Network(f"0.0.0.0/{netmask}")
        except ValueError:
            raise ValidationError(f"Invalid netmask '{netmask}'")

    @staticmethod
    def validate_host(host: str) -> None:
        """Validate a cluster management host name or address."""
        if not host:
            raise ValidationError("host cannot be empty")

        try:
            ipaddress.ip_address(host)
            return
        except ValueError:
            pass

        if not HOSTNAME_PATTERN.match(host):
            raise ValidationError(f"Invalid host '{host}'")

    @staticmethod
    def parse_interface_pair(value: str) -> Tuple[str, str]:
        """
        Parse a 'SOURCE:TARGET' interface pair.

        Returns:
            Tuple of (source interface name, target interface name)
        """
        parts = value.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValidationError(f"Invalid interface pair '{value}'. Expected SOURCE_LIF:TARGET_LIF")

        InputValidator.validate_interface_name(parts[0])
        InputValidator.validate_interface_name(parts[1])
        return parts[0], parts[1]

    @staticmethod
    def parse_destination(value: str) -> Tuple[str, str]:
        """
        Parse an 'SVM:VOLUME' replication destination.

        Returns:
            Tuple of (svm name, volume name)
        """
        svm, sep, volume = value.partition(":")
        if not sep or not svm or not volume:
            raise ValidationError(f"Invalid replication destination '{value}'. Expected SVM:VOLUME")

        InputValidator.validate_svm_name(svm)
        InputValidator.validate_volume_name(volume)
        return svm, volume

    @staticmethod
    def validate_cli_log_format(log_format: str) -> None:
        if log_format not in LOG_FORMATS:
            raise ValidationError(f"Invalid log format '{log_format}'. Must be one of: {', '.join(LOG_FORMATS)}")

    @staticmethod
    def validate_positive_number(value: float, field_name: str) -> None:
        if value is None or value <= 0:
            raise ValidationError(f"{field_name} must be a positive number")

    @staticmethod
    def validate_safe_filesystem_path(path: str, field_name: str) -> None:
        """
        Reject snapshot and export paths that could land outside the operator's area.

        Relative paths are accepted unless they climb with '..'. Absolute paths
        must resolve under /tmp, /var, the working directory or the home directory.

        Raises:
            SecurityValidationError: Traversal, shell metacharacters or a disallowed root
            ValidationError: Empty path
        """
        if not path:
            raise ValidationError(f"{field_name} path cannot be empty")

        if ".." in path.split("/"):
            raise SecurityValidationError(f"SECURITY: path traversal in {field_name} path '{path}'")

        found = sorted(set(path) & UNSAFE_PATH_CHARS)
        if found:
            raise SecurityValidationError(
                f"SECURITY: {field_name} path '{path}' contains disallowed characters: {' '.join(found)}"
            )

        if not os.path.isabs(path):
            return

        roots = ["/tmp", "/var", os.getcwd()]  # nosec B108 - prefix check only
        home = os.path.expanduser("~")
        if home != "~":
            roots.append(home)
        resolved = os.path.realpath(path)
        for root in roots:
            root = os.path.realpath(root)
            if resolved == root or resolved.startswith(root.rstrip("/") + "/"):
                return
        raise SecurityValidationError(
            f"SECURITY: absolute {field_name} path '{path}' is not allowed; "
            "use a relative path or one under /tmp, /var, the working directory or home"
        )

    @staticmethod
    def validate_all_cli_args(args: object) -> None:
        """
        Validate all CLI arguments.

        Args:
            args: Parsed CLI arguments object (after config file merge)

        Raises:
            ValidationError: If any argument validation fails
        """
        is_export = bool(getattr(args, "export_config", None))

        # Export mode only reads the source cluster
        for side in ("source",) if is_export else ("source", "target"):
            host = getattr(args, f"{side}_host", None)
            svm = getattr(args, f"{side}_svm", None)
            if not host:
                raise ValidationError(f"--{side}-host is required")
            InputValidator.validate_host(host)
            if not svm:
                raise ValidationError(f"--{side}-svm is required")
            InputValidator.validate_svm_name(svm)

        for pair in getattr(args, "interface_pairs", None) or []:
            InputValidator.parse_interface_pair(pair)

        for destination in getattr(args, "relationships", None) or []:
            svm, _volume = InputValidator.parse_destination(destination)
            if svm != args.target_svm:
                raise ValidationError(
                    f"Replication destination '{destination}' is not on target SVM '{args.target_svm}'"
                )

        if hasattr(args, "log_format") and args.log_format:
            InputValidator.validate_cli_log_format(args.log_format)

        if getattr(args, "snapshot_dir", None):
            InputValidator.validate_safe_filesystem_path(args.snapshot_dir, "snapshot-dir")
            if is_export:
                raise ValidationError("--snapshot-dir cannot be used with --export-config")

        if is_export:
            InputValidator.validate_safe_filesystem_path(args.export_config, "export-config")
            if getattr(args, "validate_only", False):
                raise ValidationError("--validate-only cannot be used with --export-config")

        if getattr(args, "poll_interval", None) is not None:
            InputValidator.validate_positive_number(args.poll_interval, "poll-interval")
        if getattr(args, "poll_timeout", None) is not None:
            InputValidator.validate_positive_number(args.poll_timeout, "poll-timeout")
        if getattr(args, "settle_delay", None) is not None and args.settle_delay < 0:
            raise ValidationError("settle-delay cannot be negative")
        if getattr(args, "transient_retries", None) is not None and args.transient_retries < 0:
            raise ValidationError("transient-retries cannot be negative")
        if getattr(args, "request_timeout", None) is not None and args.request_timeout < 1:
            raise ValidationError("request-timeout must be at least 1 second")
