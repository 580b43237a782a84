"""
Share property translation.

Exported shares carry properties in a small vocabulary. Only a handful of
share fields can be set when the share is created over REST; the property
list, symlink handling and the vscan profile are applied afterwards through
the legacy cifs-share-modify call. This module maps exported names onto the
legacy vocabulary.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from lib.constants import HOME_DIRECTORY_PROPERTY
from lib.models import ExportedShare

logger = logging.getLogger("svm_cutover")

# Normalized exported name -> legacy cifs-share-properties value
PROPERTY_TABLE: Dict[str, str] = {
    "oplocks": "oplocks",
    "browsable": "browsable",
    "showsnapshot": "showsnapshot",
    "changenotify": "changenotify",
    "homedirectory": HOME_DIRECTORY_PROPERTY,
    "attributecache": "attributecache",
    "continuouslyavailable": "continuously_available",
    "branchcache": "branchcache",
    "accessbasedenumeration": "access_based_enumeration",
    "shadowcopy": "shadowcopy",
    "namespacecaching": "namespace_caching",
    "showpreviousversions": "show_previous_versions",
}


def normalize_property_name(name: str) -> str:
    """Lowercase and drop '-', '_' and spaces."""
    return "".join(ch for ch in name.lower() if ch not in "-_ ")


@dataclass
class PropertyTranslation:
    """Legacy-surface settings derived from one exported share."""

    share_name: str
    share_properties: List[str] = field(default_factory=list)
    symlink_properties: List[str] = field(default_factory=list)
    vscan_profile: Optional[str] = None
    unknown: List[str] = field(default_factory=list)
    informational: List[str] = field(default_factory=list)
    home_directory_added: bool = False

    @property
    def has_legacy_changes(self) -> bool:
        return bool(self.share_properties or self.symlink_properties or self.vscan_profile)


def translate_share(
    share: ExportedShare,
    apply_symlink_properties: bool = False,
    apply_vscan_profile: bool = False,
) -> PropertyTranslation:
    """
    Translate a share's properties to the legacy vocabulary.

    Unknown names are passed through verbatim with a warning. Symlink
    properties and the vscan profile are only reported unless the target
    accepts them through the legacy call. Dynamic shares always get
    'homedirectory', which the target needs to accept a token path.
    """
    translation = PropertyTranslation(share_name=share.share_name)

    for name in share.share_properties:
        mapped = PROPERTY_TABLE.get(normalize_property_name(name))
        if mapped is None:
            logger.warning("Share %s: unknown property '%s' passed through unchanged", share.share_name, name)
            translation.unknown.append(name)
            mapped = name
        if mapped not in translation.share_properties:
            translation.share_properties.append(mapped)

    if share.is_dynamic and HOME_DIRECTORY_PROPERTY not in translation.share_properties:
        logger.info("Share %s has a dynamic path %s; adding %s", share.share_name, share.path, HOME_DIRECTORY_PROPERTY)
        translation.share_properties.append(HOME_DIRECTORY_PROPERTY)
        translation.home_directory_added = True

    if share.symlink_properties:
        if apply_symlink_properties:
            translation.symlink_properties = list(share.symlink_properties)
        else:
            translation.informational.append(f"symlink properties {', '.join(share.symlink_properties)}")

    if share.vscan_profile:
        if apply_vscan_profile:
            translation.vscan_profile = share.vscan_profile
        else:
            translation.informational.append(f"vscan profile {share.vscan_profile}")

    for note in translation.informational:
        logger.info("Share %s: %s not applied automatically; set it manually if required", share.share_name, note)

    return translation
