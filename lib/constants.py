"""Centralized constants for SVM cutover."""

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ROLLBACK_REQUIRED = 2
EXIT_INTERRUPT = 130

# Replication polling (in seconds)
REPLICATION_POLL_INTERVAL = 10
# None means poll until the relationship leaves the transient state
REPLICATION_POLL_TIMEOUT = None
POLL_TRANSIENT_RETRIES = 3

# Async REST job polling
JOB_POLL_INTERVAL = 2
JOB_POLL_TIMEOUT = 300

# Delay before re-reading an interface after changing it
INTERFACE_SETTLE_DELAY = 5

# API client settings
REQUEST_TIMEOUT = 60
API_RETRY_ATTEMPTS = 3

# Shares ONTAP creates itself; never exported or recreated
ADMIN_SHARE_NAMES = frozenset({"admin$", "c$", "ipc$"})

# Default ACL entry ONTAP attaches to every new share
DEFAULT_SHARE_PRINCIPAL = "Everyone"
DEFAULT_PRINCIPAL_TYPE = "windows"

# Substitution tokens that make a share path dynamic (per user/domain)
DYNAMIC_PATH_TOKENS = ("%w", "%d", "%u", "%W", "%D", "%U")

# Share property that allows a token path
HOME_DIRECTORY_PROPERTY = "homedirectory"

# Snapshot layout
SNAPSHOT_SHARES_FILE = "shares.json"
SNAPSHOT_ACLS_FILE = "acls.json"
SNAPSHOT_VOLUMES_FILE = "volumes.json"

# Environment variables for credentials
SOURCE_USERNAME_ENV_VAR = "SVM_CUTOVER_SOURCE_USERNAME"
SOURCE_PASSWORD_ENV_VAR = "SVM_CUTOVER_SOURCE_PASSWORD"  # nosec B105
TARGET_USERNAME_ENV_VAR = "SVM_CUTOVER_TARGET_USERNAME"
TARGET_PASSWORD_ENV_VAR = "SVM_CUTOVER_TARGET_PASSWORD"  # nosec B105
DEFAULT_USERNAME = "admin"

# ONTAP REST error codes
EREST_DUPLICATE_ENTRY = "1"
EREST_ENTRY_NOT_FOUND = "4"
EREST_ACL_ALREADY_EXISTS = "655418"
