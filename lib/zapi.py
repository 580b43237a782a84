"""
Legacy ONTAP API (ZAPI) envelopes.

Builds the XML request documents accepted by the cluster's legacy command
servlet and reads their results. Only used for share settings the REST
interface cannot reach.
"""

from typing import Any, Dict, List, Optional, Union

from lxml import etree

from lib.exceptions import OntapApiError

ZAPI_NAMESPACE = "http://www.netapp.com/filer/admin"
ZAPI_VERSION = "1.170"
ZAPI_URL = "/servlets/netapp.servlets.admin.XMLrequest_filer"

ArgValue = Union[str, int, bool, List[Any], Dict[str, Any], None]


def _qualified(name: str) -> str:
    return f"{{{ZAPI_NAMESPACE}}}{name}"


def _add_value(parent: etree._Element, name: str, value: ArgValue) -> None:
    """Append a child for value; lists become repeated grandchildren."""
    child = etree.SubElement(parent, _qualified(name))
    if isinstance(value, dict):
        for key, item in value.items():
            _add_value(child, key, item)
    elif isinstance(value, list):
        for item in value:
            # Each list entry is a (tag, value) pair
            tag, item_value = item
            _add_value(child, tag, item_value)
    elif isinstance(value, bool):
        child.text = "true" if value else "false"
    elif value is not None:
        child.text = str(value)


def build_envelope(api_name: str, args: Optional[Dict[str, ArgValue]] = None, vserver: Optional[str] = None) -> bytes:
    """
    Build a ZAPI request document.

    Args:
        api_name: API call name, e.g. 'cifs-share-modify'
        args: Call arguments; dicts nest, lists hold (tag, value) pairs
        vserver: Tunnel the call to this SVM

    Returns:
        Serialized XML request
    """
    root = etree.Element(_qualified("netapp"), nsmap={None: ZAPI_NAMESPACE})
    root.set("version", ZAPI_VERSION)
    if vserver:
        root.set("vfiler", vserver)

    call = etree.SubElement(root, _qualified(api_name))
    for name, value in (args or {}).items():
        _add_value(call, name, value)

    return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


def _localname(element: etree._Element) -> str:
    return etree.QName(element).localname


def parse_result(payload: bytes) -> etree._Element:
    """
    Parse a ZAPI response and return its <results> element.

    Raises:
        OntapApiError: If the response is malformed or reports failure
    """
    try:
        root = etree.fromstring(payload)
    except etree.XMLSyntaxError as e:
        raise OntapApiError("EINVALIDXML", f"Unparseable legacy API response: {e}")

    results = None
    for child in root:
        if _localname(child) == "results":
            results = child
            break

    if results is None:
        raise OntapApiError("ENORESULTS", "Legacy API response has no results element")

    if results.get("status") != "passed":
        raise OntapApiError(
            results.get("errno") or "ESTATUSFAILED",
            results.get("reason") or "Execution status is failed due to unknown reason",
        )

    return results


def share_modify_envelope(
    vserver: str,
    share_name: str,
    share_properties: List[str],
    symlink_properties: Optional[List[str]] = None,
    vscan_profile: Optional[str] = None,
) -> bytes:
    """Build a cifs-share-modify request setting share-level properties."""
    args: Dict[str, ArgValue] = {
        "share-name": share_name,
        "share-properties": [("cifs-share-properties", prop) for prop in share_properties],
    }
    if symlink_properties:
        args["symlink-properties"] = [("cifs-share-symlink-properties", prop) for prop in symlink_properties]
    if vscan_profile:
        args["vscan-fileop-profile"] = vscan_profile

    return build_envelope("cifs-share-modify", args, vserver=vserver)
