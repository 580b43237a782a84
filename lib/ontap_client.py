"""
ONTAP cluster client for SVM cutover.

Wraps the ONTAP REST API (primary configuration surface) and the legacy
XML API (secondary surface, see lib.zapi) behind the narrow set of calls the
cutover needs. Read calls are retried on transient faults; mutations are not.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.exceptions import InsecureRequestWarning
from urllib3.util.retry import Retry

from lib import zapi
from lib.constants import (
    API_RETRY_ATTEMPTS,
    EREST_ENTRY_NOT_FOUND,
    JOB_POLL_INTERVAL,
    JOB_POLL_TIMEOUT,
    REQUEST_TIMEOUT,
)
from lib.exceptions import OntapApiError, PollTimeoutError, TransientError
from lib.models import (
    CifsService,
    ClientSession,
    ExportedAcl,
    ExportedShare,
    NetworkInterface,
    RelationshipStatus,
    ReplicationRelationship,
    Volume,
)
from lib.utils import dry_run_skip
from lib.waiter import poll_until

logger = logging.getLogger("svm_cutover")

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

# REST boolean share fields and the share property each one stands for
SHARE_FLAG_PROPERTIES = {
    "oplocks": "oplocks",
    "browsable": "browsable",
    "show_snapshot": "showsnapshot",
    "change_notify": "changenotify",
    "home_directory": "homedirectory",
    "access_based_enumeration": "access_based_enumeration",
    "continuously_available": "continuously_available",
    "namespace_caching": "namespace_caching",
    "show_previous_versions": "show_previous_versions",
    "branch_cache": "branchcache",
    "attribute_cache": "attributecache",
}

# REST unix_symlink values and their legacy symlink-properties equivalent
SYMLINK_PROPERTIES = {
    "local": ["symlinks"],
    "widelink": ["symlinks_and_widelinks"],
    "disable": ["disable"],
}

SHARE_FIELDS = ",".join(
    [
        "name",
        "path",
        "comment",
        "file_umask",
        "dir_umask",
        "offline_files",
        "attribute_cache_ttl",
        "unix_symlink",
        "vscan_profile",
    ]
    + list(SHARE_FLAG_PROPERTIES)
)

# Standard retry decorator for read-only API calls
retry_api_call = retry(
    retry=retry_if_exception_type(TransientError),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    stop=stop_after_attempt(API_RETRY_ATTEMPTS),
    before_sleep=before_sleep_log(logger, logging.DEBUG),
    reraise=True,
)


class OntapClient:
    """Authenticated session to one ONTAP cluster."""

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        verify_ssl: bool = True,
        request_timeout: int = REQUEST_TIMEOUT,
        dry_run: bool = False,
    ) -> None:
        """
        Prepare a client for a cluster management endpoint.

        Args:
            host: Cluster management host name or address
            username: API user
            password: API password
            verify_ssl: Verify the cluster TLS certificate
            request_timeout: Per-call timeout in seconds
            dry_run: If True, mutating calls are logged and skipped
        """
        self.host = host
        self.username = username
        self._password = password
        self.verify_ssl = verify_ssl
        self.request_timeout = request_timeout
        self.dry_run = dry_run
        self.base_url = f"https://{host}/api"
        self.cluster_name: Optional[str] = None
        self.ontap_version: Optional[str] = None
        self._session: Optional[requests.Session] = None
        self._svm_uuids: Dict[str, str] = {}

    def __str__(self) -> str:
        return f"cluster {self.cluster_name or self.host}"

    # =============================
    # Session handling
    # =============================
    def _build_session(self) -> requests.Session:
        session = requests.Session()
        # Resilient to temporary network failures such as name resolution errors
        max_retries = Retry(total=5, connect=5, read=2, backoff_factor=1, allowed_methods=["GET"])
        session.mount("https://", HTTPAdapter(max_retries=max_retries))
        session.auth = (self.username, self._password)
        session.verify = self.verify_ssl
        session.headers.update({"Accept": "application/json"})

        if not self.verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)
            logger.warning("TLS certificate verification disabled for %s", self.host)

        return session

    @retry_api_call
    def connect(self) -> None:
        """Open the session and confirm the credentials work."""
        if self._session is None:
            self._session = self._build_session()

        cluster = self.send_request("get", "/cluster", query={"fields": "name,version"})
        self.cluster_name = cluster.get("name")
        self.ontap_version = cluster.get("version", {}).get("full")
        logger.info("Connected to %s (%s)", self.cluster_name or self.host, self.ontap_version or "unknown version")

    def disconnect(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
            logger.debug("Disconnected from %s", self.host)

    # =============================
    # Transport
    # =============================
    def send_request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Invoke a REST call and return the decoded body.

        Raises:
            TransientError: Connection problems, timeouts, 429 and 5xx responses
            OntapApiError: Any other error reported by the cluster
        """
        if self._session is None:
            raise OntapApiError("ENOTCONNECTED", f"Not connected to {self.host}")

        url = self.base_url + path
        logger.debug("Request: %s %s query=%s body=%s", method.upper(), path, query, body)

        try:
            response = self._session.request(
                method.upper(), url, params=query, json=body, timeout=self.request_timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientError(f"{method.upper()} {path} on {self.host} failed: {e}")

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransientError(f"{method.upper()} {path} on {self.host} returned HTTP {response.status_code}")

        error = payload.get("error") if isinstance(payload, dict) else None
        if error or response.status_code >= 400:
            error = error or {}
            raise OntapApiError(
                error.get("code") or str(response.status_code),
                error.get("message") or f"HTTP {response.status_code} for {method.upper()} {path}",
            )

        if response.status_code == 202 and payload.get("job"):
            self._wait_for_job(payload["job"]["uuid"], f"{method.upper()} {path}")

        return payload

    def _wait_for_job(self, job_uuid: str, description: str) -> None:
        """Block until an asynchronous REST job finishes."""
        try:
            job = poll_until(
                f"job {job_uuid} ({description})",
                lambda: self.send_request("get", f"/cluster/jobs/{job_uuid}", query={"fields": "state,message,code"}),
                lambda record: record.get("state") in ("success", "failure"),
                interval=JOB_POLL_INTERVAL,
                timeout=JOB_POLL_TIMEOUT,
                logger=logger,
            )
        except PollTimeoutError as e:
            raise TransientError(f"Job {job_uuid} for {description} did not finish in {JOB_POLL_TIMEOUT}s") from e
        if job.get("state") == "failure":
            raise OntapApiError(str(job.get("code", "EJOBFAILED")), job.get("message") or "job failed")

    @retry_api_call
    def _get_records(self, path: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        result = self.send_request("get", path, query=query)
        return result.get("records", [])

    def _get_svm_uuid(self, svm: str) -> str:
        if svm not in self._svm_uuids:
            records = self._get_records("/svm/svms", {"name": svm, "fields": "uuid"})
            if not records:
                raise OntapApiError(EREST_ENTRY_NOT_FOUND, f"SVM {svm} not found on {self.host}")
            self._svm_uuids[svm] = records[0]["uuid"]
        return self._svm_uuids[svm]

    # =============================
    # Network interfaces
    # =============================
    @staticmethod
    def _interface_from_record(record: Dict[str, Any], svm: str) -> NetworkInterface:
        services = record.get("services") or []
        ip = record.get("ip") or {}
        return NetworkInterface(
            name=record["name"],
            svm=record.get("svm", {}).get("name", svm),
            address=ip.get("address"),
            netmask=None if ip.get("netmask") is None else str(ip.get("netmask")),
            protocols=list(record.get("data_protocols") or services),
            role=record.get("role") or services,
            admin_up=bool(record.get("enabled", True)),
            uuid=record.get("uuid"),
        )

    def list_interfaces(self, svm: str) -> List[NetworkInterface]:
        records = self._get_records(
            "/network/ip/interfaces",
            {"svm.name": svm, "fields": "name,uuid,ip.address,ip.netmask,services,enabled,svm.name"},
        )
        return [self._interface_from_record(r, svm) for r in records]

    def get_interface(self, svm: str, name: str) -> Optional[NetworkInterface]:
        records = self._get_records(
            "/network/ip/interfaces",
            {"svm.name": svm, "name": name, "fields": "name,uuid,ip.address,ip.netmask,services,enabled,svm.name"},
        )
        return self._interface_from_record(records[0], svm) if records else None

    @dry_run_skip(message="Would modify interface")
    def set_interface(
        self,
        svm: str,
        name: str,
        admin_up: Optional[bool] = None,
        address: Optional[str] = None,
        netmask: Optional[str] = None,
    ) -> None:
        """Change admin status and/or address of an interface."""
        interface = self.get_interface(svm, name)
        if interface is None:
            raise OntapApiError(EREST_ENTRY_NOT_FOUND, f"Interface {svm}:{name} not found")

        body: Dict[str, Any] = {}
        if admin_up is not None:
            body["enabled"] = admin_up
        if address is not None or netmask is not None:
            body["ip"] = {k: v for k, v in (("address", address), ("netmask", netmask)) if v is not None}

        self.send_request("patch", f"/network/ip/interfaces/{interface.uuid}", body=body)

    # =============================
    # Replication (SnapMirror)
    # =============================
    @staticmethod
    def _relationship_from_record(record: Dict[str, Any]) -> ReplicationRelationship:
        destination = record.get("destination", {}).get("path", "")
        return ReplicationRelationship(
            source_location=record.get("source", {}).get("path", ""),
            destination_location=destination,
            volume_name=destination.partition(":")[2],
            status=RelationshipStatus.from_rest(record.get("state"), record.get("transfer", {}).get("state")),
            uuid=record.get("uuid"),
        )

    def list_replications(self) -> List[ReplicationRelationship]:
        records = self._get_records(
            "/snapmirror/relationships",
            {"fields": "uuid,source.path,destination.path,state,transfer.state"},
        )
        return [self._relationship_from_record(r) for r in records]

    def get_replication(self, destination: str) -> Optional[ReplicationRelationship]:
        records = self._get_records(
            "/snapmirror/relationships",
            {"destination.path": destination, "fields": "uuid,source.path,destination.path,state,transfer.state"},
        )
        return self._relationship_from_record(records[0]) if records else None

    def _require_replication(self, destination: str) -> ReplicationRelationship:
        relationship = self.get_replication(destination)
        if relationship is None:
            raise OntapApiError(EREST_ENTRY_NOT_FOUND, f"No replication relationship for {destination}")
        return relationship

    @dry_run_skip(message="Would update replication")
    def update_replication(self, destination: str) -> None:
        relationship = self._require_replication(destination)
        self.send_request("post", f"/snapmirror/relationships/{relationship.uuid}/transfers", body={})

    @dry_run_skip(message="Would quiesce replication")
    def quiesce_replication(self, destination: str) -> None:
        relationship = self._require_replication(destination)
        self.send_request("patch", f"/snapmirror/relationships/{relationship.uuid}", body={"state": "paused"})

    @dry_run_skip(message="Would break replication")
    def break_replication(self, destination: str) -> None:
        relationship = self._require_replication(destination)
        self.send_request("patch", f"/snapmirror/relationships/{relationship.uuid}", body={"state": "broken_off"})

    # =============================
    # CIFS shares and ACLs
    # =============================
    @staticmethod
    def _share_from_record(record: Dict[str, Any]) -> ExportedShare:
        properties = [prop for field, prop in SHARE_FLAG_PROPERTIES.items() if record.get(field)]
        return ExportedShare(
            share_name=record["name"],
            path=record.get("path", ""),
            comment=record.get("comment"),
            file_umask=None if record.get("file_umask") is None else str(record["file_umask"]),
            dir_umask=None if record.get("dir_umask") is None else str(record["dir_umask"]),
            offline_files=record.get("offline_files"),
            attribute_cache_ttl=record.get("attribute_cache_ttl"),
            share_properties=properties,
            symlink_properties=list(SYMLINK_PROPERTIES.get(record.get("unix_symlink") or "", [])),
            vscan_profile=record.get("vscan_profile"),
        )

    def list_shares(self, svm: str) -> List[ExportedShare]:
        records = self._get_records("/protocols/cifs/shares", {"svm.name": svm, "fields": SHARE_FIELDS})
        return [self._share_from_record(r) for r in records]

    def get_share(self, svm: str, share_name: str) -> Optional[ExportedShare]:
        records = self._get_records(
            "/protocols/cifs/shares", {"svm.name": svm, "name": share_name, "fields": SHARE_FIELDS}
        )
        return self._share_from_record(records[0]) if records else None

    @dry_run_skip(message="Would create share")
    def create_share(
        self,
        svm: str,
        share_name: str,
        path: str,
        comment: Optional[str] = None,
        file_umask: Optional[str] = None,
        dir_umask: Optional[str] = None,
        offline_files: Optional[str] = None,
        attribute_cache_ttl: Optional[str] = None,
        home_directory: bool = False,
    ) -> None:
        """
        Create a share with the fields the REST interface accepts at creation.

        home_directory must be set at creation for a path with %w style tokens.
        """
        body: Dict[str, Any] = {"svm": {"name": svm}, "name": share_name, "path": path}
        if home_directory:
            body["home_directory"] = True
        optional = {
            "comment": comment,
            "file_umask": file_umask,
            "dir_umask": dir_umask,
            "offline_files": offline_files,
            "attribute_cache_ttl": attribute_cache_ttl,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        self.send_request("post", "/protocols/cifs/shares", body=body)

    def list_share_acls(self, svm: str, share_name: str) -> List[ExportedAcl]:
        svm_uuid = self._get_svm_uuid(svm)
        records = self._get_records(
            f"/protocols/cifs/shares/{svm_uuid}/{share_name}/acls",
            {"fields": "user_or_group,type,permission"},
        )
        return [
            ExportedAcl(
                share_name=share_name,
                user_or_group=r["user_or_group"],
                permission=r.get("permission", "full_control"),
                user_group_type=r.get("type", "windows"),
            )
            for r in records
        ]

    @dry_run_skip(message="Would add share ACL")
    def add_share_acl(
        self, svm: str, share_name: str, user_or_group: str, user_group_type: str, permission: str
    ) -> None:
        svm_uuid = self._get_svm_uuid(svm)
        body = {"user_or_group": user_or_group, "type": user_group_type, "permission": permission}
        self.send_request("post", f"/protocols/cifs/shares/{svm_uuid}/{share_name}/acls", body=body)

    @dry_run_skip(message="Would remove share ACL")
    def remove_share_acl(self, svm: str, share_name: str, user_or_group: str, user_group_type: str) -> None:
        svm_uuid = self._get_svm_uuid(svm)
        self.send_request(
            "delete", f"/protocols/cifs/shares/{svm_uuid}/{share_name}/acls/{user_or_group}/{user_group_type}"
        )

    # =============================
    # Legacy command surface
    # =============================
    @dry_run_skip(message="Would invoke legacy command")
    def invoke_legacy_command(self, envelope: bytes) -> Any:
        """
        Send a legacy XML API envelope and return its <results> element.

        Raises:
            TransientError: Connection problems or 5xx responses
            OntapApiError: The call reported failure
        """
        if self._session is None:
            raise OntapApiError("ENOTCONNECTED", f"Not connected to {self.host}")

        url = f"https://{self.host}{zapi.ZAPI_URL}"
        try:
            response = self._session.post(
                url, data=envelope, headers={"Content-Type": "text/xml"}, timeout=self.request_timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientError(f"Legacy API call on {self.host} failed: {e}")

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransientError(f"Legacy API call on {self.host} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise OntapApiError(str(response.status_code), f"Legacy API call rejected with HTTP {response.status_code}")

        return zapi.parse_result(response.content)

    # =============================
    # Sessions, volumes, CIFS service
    # =============================
    def list_sessions(self, svm: str) -> List[ClientSession]:
        records = self._get_records(
            "/protocols/cifs/sessions", {"svm.name": svm, "fields": "identifier,client_ip,user"}
        )
        return [
            ClientSession(
                svm=svm,
                client_address=r.get("client_ip"),
                user=r.get("user"),
                session_id=None if r.get("identifier") is None else str(r["identifier"]),
            )
            for r in records
        ]

    @staticmethod
    def _volume_from_record(record: Dict[str, Any], svm: str) -> Volume:
        return Volume(
            name=record["name"],
            svm=svm,
            junction_path=record.get("nas", {}).get("path") or None,
            uuid=record.get("uuid"),
        )

    def list_volumes(self, svm: str) -> List[Volume]:
        records = self._get_records("/storage/volumes", {"svm.name": svm, "fields": "name,uuid,nas.path"})
        return [self._volume_from_record(r, svm) for r in records]

    def get_volume(self, svm: str, name: str) -> Optional[Volume]:
        records = self._get_records("/storage/volumes", {"svm.name": svm, "name": name, "fields": "name,uuid,nas.path"})
        return self._volume_from_record(records[0], svm) if records else None

    @dry_run_skip(message="Would mount volume")
    def mount_volume(self, svm: str, name: str, junction_path: str) -> None:
        volume = self.get_volume(svm, name)
        if volume is None:
            raise OntapApiError(EREST_ENTRY_NOT_FOUND, f"Volume {svm}:{name} not found")
        self.send_request("patch", f"/storage/volumes/{volume.uuid}", body={"nas": {"path": junction_path}})

    def get_cifs_service(self, svm: str) -> Optional[CifsService]:
        records = self._get_records("/protocols/cifs/services", {"svm.name": svm, "fields": "name,enabled,svm.uuid"})
        if not records:
            return None
        record = records[0]
        return CifsService(
            svm=svm,
            name=record.get("name"),
            enabled=bool(record.get("enabled")),
            uuid=record.get("svm", {}).get("uuid"),
        )

    @dry_run_skip(message="Would change CIFS service state")
    def set_cifs_service_enabled(self, svm: str, enabled: bool) -> None:
        svm_uuid = self._get_svm_uuid(svm)
        self.send_request("patch", f"/protocols/cifs/services/{svm_uuid}", body={"enabled": enabled})
