"""Shared fixtures for SVM cutover unit tests."""

import logging
import sys
from dataclasses import replace
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add parent to path to import modules directly
sys.path.insert(0, str(Path(__file__).parent.parent))

from lib.context import RunContext, RunSettings
from lib.models import CifsService, NetworkInterface
from lib.ontap_client import OntapClient

SOURCE_SVM = "svm_prod"
TARGET_SVM = "svm_dr"


def make_interface(name, svm=SOURCE_SVM, address="10.0.0.10", netmask="24", admin_up=True, **kwargs):
    """Build a CIFS data interface record."""
    return NetworkInterface(
        name=name,
        svm=svm,
        address=address,
        netmask=netmask,
        protocols=kwargs.pop("protocols", ["cifs"]),
        role=kwargs.pop("role", "data"),
        admin_up=admin_up,
        **kwargs,
    )


@pytest.fixture
def mock_source_client():
    """Create a mock OntapClient for the source cluster."""
    client = Mock(spec=OntapClient)
    client.host = "cluster-a"
    client.list_interfaces.return_value = []
    client.list_sessions.return_value = []
    client.list_shares.return_value = []
    client.list_volumes.return_value = []
    client.get_cifs_service.return_value = CifsService(svm=SOURCE_SVM, name="PRODCIFS", enabled=True)
    return client


@pytest.fixture
def mock_target_client():
    """Create a mock OntapClient for the target cluster."""
    client = Mock(spec=OntapClient)
    client.host = "cluster-b"
    client.list_interfaces.return_value = []
    client.list_replications.return_value = []
    client.list_shares.return_value = []
    client.get_volume.return_value = None
    client.get_replication.return_value = None
    client.get_cifs_service.return_value = CifsService(svm=TARGET_SVM, name="DRCIFS", enabled=True)
    return client


@pytest.fixture
def make_ctx(mock_source_client, mock_target_client):
    """Factory for a RunContext wired to the mock clients."""

    def _make(simulate=False, force=False, **settings):
        settings.setdefault("poll_interval", 0)
        settings.setdefault("settle_delay", 0)
        return RunContext(
            source=mock_source_client,
            target=mock_target_client,
            source_svm=SOURCE_SVM,
            target_svm=TARGET_SVM,
            simulate=simulate,
            force=force,
            settings=RunSettings(**settings),
            logger=logging.getLogger("svm_cutover.test"),
        )

    return _make


class InterfaceStore:
    """
    Stateful stand-in for get_interface/set_interface.

    Lets confirmation reads after a change see the new state.
    """

    def __init__(self, *interfaces):
        self.interfaces = {(i.svm, i.name): i for i in interfaces}

    def attach(self, client):
        client.get_interface.side_effect = self.get_interface
        client.set_interface.side_effect = self.set_interface
        return client

    def get_interface(self, svm, name):
        interface = self.interfaces.get((svm, name))
        return replace(interface) if interface is not None else None

    def set_interface(self, svm, name, admin_up=None, address=None, netmask=None):
        interface = self.interfaces[(svm, name)]
        if admin_up is not None:
            interface.admin_up = admin_up
        if address is not None:
            interface.address = address
        if netmask is not None:
            interface.netmask = netmask
