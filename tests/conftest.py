"""
Pytest configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from calico_install.api.models import (
    CalicoNetworkSpec,
    CNISpec,
    DaemonSetUpdateStrategy,
    Installation,
    InstallationSpec,
)
from calico_install.cli.lib.config import CalicoInstallConfig

VALID_MANIFEST = """\
apiVersion: operator.tigera.io/v1
kind: Installation
metadata:
  name: default
spec:
  variant: Calico
  cni:
    type: Calico
  flexVolumePath: /usr/libexec/kubernetes/kubelet-plugins/volume/exec/
  nodeUpdateStrategy:
    type: RollingUpdate
  calicoNetwork:
    bgp: Enabled
    ipPools:
      - cidr: 192.168.0.0/16
        blockSize: 26
        encapsulation: IPIP
        natOutgoing: Enabled
        nodeSelector: all()
"""


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external collaborators")
    config.addinivalue_line("markers", "integration: CLI and API tests")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def installation():
    """A valid Calico Installation without defaults applied."""
    return Installation(
        spec=InstallationSpec(
            calico_network=CalicoNetworkSpec(),
            flex_volume_path="/usr/libexec/kubernetes/kubelet-plugins/volume/exec/",
            node_update_strategy=DaemonSetUpdateStrategy(type="RollingUpdate"),
            variant="Calico",
            cni=CNISpec(type="Calico"),
        )
    )


@pytest.fixture
def config():
    """Config with built-in defaults, independent of the host's config file."""
    return CalicoInstallConfig()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, temp_dir):
    """Point the config loader at a file that does not exist."""
    monkeypatch.setenv("CALICO_INSTALL_CONFIG_PATH", str(temp_dir / "missing.conf"))


@pytest.fixture
def manifest_file(temp_dir):
    """Write a manifest to disk and return its path."""

    def _write(text=VALID_MANIFEST, name="installation.yaml"):
        path = temp_dir / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
