"""
Pydantic models for the Installation resource and API requests and responses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel


class Variant(str, Enum):
    """Product variant to install."""

    CALICO = "Calico"
    TIGERA_SECURE_ENTERPRISE = "TigeraSecureEnterprise"


class Provider(str, Enum):
    """Kubernetes platform the cluster runs on."""

    NONE = ""
    EKS = "EKS"
    GKE = "GKE"
    AKS = "AKS"
    OPENSHIFT = "OpenShift"
    DOCKER_ENTERPRISE = "DockerEnterprise"


class CNIPluginType(str, Enum):
    """CNI plugin values."""

    CALICO = "Calico"
    GKE = "GKE"
    AMAZON_VPC = "AmazonVPC"
    AZURE_VNET = "AzureVNET"


class BGPOption(str, Enum):
    """BGP values."""

    ENABLED = "Enabled"
    DISABLED = "Disabled"


class EncapsulationType(str, Enum):
    """IP pool encapsulation values."""

    IPIP_CROSS_SUBNET = "IPIPCrossSubnet"
    IPIP = "IPIP"
    VXLAN = "VXLAN"
    VXLAN_CROSS_SUBNET = "VXLANCrossSubnet"
    NONE = "None"


class NATOutgoingType(str, Enum):
    """NAT outgoing values."""

    ENABLED = "Enabled"
    DISABLED = "Disabled"


class HostPortsType(str, Enum):
    """Host ports values."""

    ENABLED = "Enabled"
    DISABLED = "Disabled"


class MultiInterfaceMode(str, Enum):
    """Multi-interface mode values."""

    NONE = "None"
    MULTUS = "Multus"


class ContainerIPForwardingType(str, Enum):
    """Container IP forwarding values."""

    ENABLED = "Enabled"
    DISABLED = "Disabled"


class KubernetesAutodetectionMethod(str, Enum):
    """Kubernetes-based node address autodetection methods."""

    NODE_INTERNAL_IP = "NodeInternalIP"


class DaemonSetUpdateStrategyType(str, Enum):
    """Daemonset update strategy types."""

    ROLLING_UPDATE = "RollingUpdate"
    ON_DELETE = "OnDelete"


# Installation resource models
#
# Enumerated fields are typed as plain strings so that unrecognized values
# survive parsing and are reported by the validator. The enums above are the
# recognized sets.


class ResourceModel(BaseModel):
    """Base model mapping snake_case attributes to camelCase manifest keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ObjectMeta(ResourceModel):
    """Subset of Kubernetes object metadata."""

    name: str = "default"
    namespace: Optional[str] = None
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None


class IPPool(ResourceModel):
    """IP pool to create when the Calico plugin is used."""

    cidr: str = Field("", description="Pool CIDR (e.g., 192.168.0.0/16)")
    block_size: Optional[StrictInt] = Field(None, description="Prefix length of per-node blocks")
    encapsulation: str = Field("", description="Encapsulation type")
    nat_outgoing: str = Field("", description="NAT outgoing policy")
    node_selector: str = Field("", description="Selector for nodes using this pool")


class NodeAddressAutodetection(ResourceModel):
    """Node IP address autodetection method. At most one method may be set."""

    first_found: Optional[bool] = None
    kubernetes: Optional[str] = None
    interface: Optional[str] = None
    skip_interface: Optional[str] = None
    can_reach: Optional[str] = None
    cidrs: Optional[List[str]] = None


class CalicoNetworkSpec(ResourceModel):
    """Configuration for the native Calico networking plugin."""

    bgp: Optional[str] = None
    ip_pools: List[IPPool] = Field(default_factory=list)
    node_address_autodetection_v4: Optional[NodeAddressAutodetection] = Field(
        None, alias="nodeAddressAutodetectionV4"
    )
    node_address_autodetection_v6: Optional[NodeAddressAutodetection] = Field(
        None, alias="nodeAddressAutodetectionV6"
    )
    host_ports: Optional[str] = None
    multi_interface_mode: Optional[str] = None
    container_ip_forwarding: Optional[str] = Field(None, alias="containerIPForwarding")


class CNISpec(ResourceModel):
    """CNI plugin selection."""

    type: str = ""


class RollingUpdateDaemonSet(ResourceModel):
    max_unavailable: Optional[Union[int, str]] = None


class DaemonSetUpdateStrategy(ResourceModel):
    type: str = ""
    rolling_update: Optional[RollingUpdateDaemonSet] = None


class InstallationSpec(ResourceModel):
    """Desired state of a Calico installation."""

    variant: str = ""
    registry: str = ""
    kubernetes_provider: str = ""
    cni: Optional[CNISpec] = None
    calico_network: Optional[CalicoNetworkSpec] = None
    flex_volume_path: str = ""
    node_update_strategy: DaemonSetUpdateStrategy = Field(default_factory=DaemonSetUpdateStrategy)
    control_plane_node_selector: Optional[Dict[str, str]] = None


class Installation(ResourceModel):
    """Installation custom resource."""

    api_version: str = "operator.tigera.io/v1"
    kind: str = "Installation"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: InstallationSpec = Field(default_factory=InstallationSpec)


# API models


class ViolationModel(BaseModel):
    """A single violated rule."""

    rule: str
    kind: str
    field: str
    value: Any = None
    detail: str


class ValidationResult(BaseModel):
    """Outcome of validating an Installation."""

    name: str
    valid: bool
    violations: List[ViolationModel] = Field(default_factory=list)


class InstallationValidateResponse(BaseModel):
    """Response model for validation requests."""

    request_id: str
    status: str
    data: dict


class InstallationDefaultsResponse(BaseModel):
    """Response model for defaulting requests."""

    request_id: str
    status: str
    data: dict


class SuccessResponse(BaseModel):
    """Generic success response."""

    request_id: str
    status: str
    data: dict


class ErrorResponse(BaseModel):
    """Generic error response."""

    request_id: str
    status: str
    error: dict
