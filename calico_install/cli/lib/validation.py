"""
Installation validation.

Every rule is an independent function that takes the InstallationSpec and
returns the violations it found. Rules never mutate their input, and a rule whose
prerequisite field is absent does not apply. `collect_violations` runs all of
them; `validate_custom_resource` raises if any rule was violated.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

from calico_install.api.models import (
    BGPOption,
    CNIPluginType,
    ContainerIPForwardingType,
    DaemonSetUpdateStrategyType,
    EncapsulationType,
    HostPortsType,
    Installation,
    InstallationSpec,
    IPPool,
    KubernetesAutodetectionMethod,
    MultiInterfaceMode,
    NATOutgoingType,
    NodeAddressAutodetection,
    Provider,
    Variant,
)
from calico_install.cli.lib.errors import InstallationValidationError
from calico_install.cli.lib.validators import (
    IPNetwork,
    allowed_values,
    block_size_range,
    is_absolute_path,
    is_member,
    parse_cidr,
    validate_ip,
    validate_regex,
)

logger = logging.getLogger(__name__)

FLEX_VOLUME_PATH_DISABLED = "None"
OS_NODE_SELECTOR_LABELS = ("kubernetes.io/os", "beta.kubernetes.io/os")
MAX_IP_POOLS = 2

# Providers each vendor CNI plugin may run on. Calico runs on every provider.
PLUGIN_PROVIDERS = {
    CNIPluginType.AMAZON_VPC: {Provider.NONE, Provider.EKS},
    CNIPluginType.GKE: {Provider.NONE, Provider.GKE},
    CNIPluginType.AZURE_VNET: {Provider.NONE, Provider.AKS},
}

IPIP_ENCAPSULATIONS = (EncapsulationType.IPIP, EncapsulationType.IPIP_CROSS_SUBNET)

AUTODETECTION_METHODS = {
    "first_found": "firstFound",
    "kubernetes": "kubernetes",
    "interface": "interface",
    "skip_interface": "skipInterface",
    "can_reach": "canReach",
    "cidrs": "cidrs",
}


class ViolationKind(str, Enum):
    """Category of a violated rule."""

    MALFORMED = "Malformed"
    OUT_OF_RANGE = "OutOfRange"
    ILLEGAL_COMBINATION = "IllegalCombination"
    MISSING = "Missing"


@dataclass(frozen=True)
class Violation:
    """A violated rule.

    Attributes:
        rule: Stable identifier of the rule
        kind: Category of the violation
        field: Manifest path of the offending field
        value: The offending value
        detail: Human readable description
    """

    rule: str
    kind: ViolationKind
    field: str
    value: Any
    detail: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "kind": self.kind.value,
            "field": self.field,
            "value": self.value,
            "detail": self.detail,
        }


Rule = Callable[[InstallationSpec], List[Violation]]


def _plugin(spec: InstallationSpec) -> Optional[CNIPluginType]:
    if spec.cni is None or not is_member(spec.cni.type, CNIPluginType):
        return None
    return CNIPluginType(spec.cni.type)


def _provider(spec: InstallationSpec) -> Optional[Provider]:
    if not is_member(spec.kubernetes_provider, Provider):
        return None
    return Provider(spec.kubernetes_provider)


def _pools(spec: InstallationSpec) -> List[IPPool]:
    if spec.calico_network is None:
        return []
    return spec.calico_network.ip_pools


def _pool_path(index: int) -> str:
    return f"spec.calicoNetwork.ipPools[{index}]"


def _pool_network(pool: IPPool) -> Optional[IPNetwork]:
    try:
        return parse_cidr(pool.cidr)
    except ValueError:
        return None


def _check_choice(rule: str, field: str, value: Optional[str], choices: Type[Enum]) -> List[Violation]:
    if value is None or is_member(value, choices):
        return []
    return [
        Violation(
            rule,
            ViolationKind.MALFORMED,
            field,
            value,
            f"{field} {value!r} is not supported; must be one of {allowed_values(choices)}",
        )
    ]


# Top level


def check_cni_type(spec: InstallationSpec) -> List[Violation]:
    if spec.cni is None:
        return [Violation("cni-required", ViolationKind.MISSING, "spec.cni", None, "spec.cni must be defined")]

    if not spec.cni.type:
        return [
            Violation(
                "cni-type-required",
                ViolationKind.MISSING,
                "spec.cni.type",
                spec.cni.type,
                "spec.cni.type must be specified",
            )
        ]

    return _check_choice("cni-type", "spec.cni.type", spec.cni.type, CNIPluginType)


def check_variant(spec: InstallationSpec) -> List[Violation]:
    if not spec.variant:
        return []
    return _check_choice("variant", "spec.variant", spec.variant, Variant)


def check_kubernetes_provider(spec: InstallationSpec) -> List[Violation]:
    return _check_choice("kubernetes-provider", "spec.kubernetesProvider", spec.kubernetes_provider, Provider)


def check_calico_network_plugin(spec: InstallationSpec) -> List[Violation]:
    """CalicoNetwork is only meaningful with the Calico CNI plugin."""
    plugin = _plugin(spec)
    if spec.calico_network is None or plugin is None or plugin == CNIPluginType.CALICO:
        return []

    return [
        Violation(
            "calico-network-plugin",
            ViolationKind.ILLEGAL_COMBINATION,
            "spec.calicoNetwork",
            plugin.value,
            f"spec.calicoNetwork is only supported with the Calico CNI plugin, not {plugin.value}",
        )
    ]


def check_plugin_provider(spec: InstallationSpec) -> List[Violation]:
    plugin = _plugin(spec)
    provider = _provider(spec)
    if plugin is None or provider is None:
        return []

    allowed = PLUGIN_PROVIDERS.get(plugin)
    if allowed is None or provider in allowed:
        return []

    return [
        Violation(
            "cni-plugin-provider",
            ViolationKind.ILLEGAL_COMBINATION,
            "spec.cni.type",
            plugin.value,
            f"spec.cni.type {plugin.value} is not supported on kubernetesProvider {provider.value or 'none'}",
        )
    ]


def check_flex_volume_path(spec: InstallationSpec) -> List[Violation]:
    path = spec.flex_volume_path
    if not path or path == FLEX_VOLUME_PATH_DISABLED or is_absolute_path(path):
        return []

    return [
        Violation(
            "flex-volume-path",
            ViolationKind.MALFORMED,
            "spec.flexVolumePath",
            path,
            f"spec.flexVolumePath '{path}' is not an absolute path",
        )
    ]


def check_node_update_strategy(spec: InstallationSpec) -> List[Violation]:
    strategy = spec.node_update_strategy.type
    if not strategy or strategy == DaemonSetUpdateStrategyType.ROLLING_UPDATE.value:
        return []

    return [
        Violation(
            "node-update-strategy",
            ViolationKind.MALFORMED,
            "spec.nodeUpdateStrategy.type",
            strategy,
            f"spec.nodeUpdateStrategy.type '{strategy}' is not supported; only RollingUpdate is",
        )
    ]


def check_control_plane_node_selector(spec: InstallationSpec) -> List[Violation]:
    selector = spec.control_plane_node_selector or {}
    violations = []
    for label in OS_NODE_SELECTOR_LABELS:
        value = selector.get(label)
        if value is not None and value != "linux":
            field = f"spec.controlPlaneNodeSelector[{label}]"
            violations.append(
                Violation(
                    "control-plane-os",
                    ViolationKind.MALFORMED,
                    field,
                    value,
                    f"{field} must be 'linux', got '{value}'",
                )
            )
    return violations


# CalicoNetwork options


def check_bgp(spec: InstallationSpec) -> List[Violation]:
    if spec.calico_network is None:
        return []
    return _check_choice("bgp", "spec.calicoNetwork.bgp", spec.calico_network.bgp, BGPOption)


def check_host_ports(spec: InstallationSpec) -> List[Violation]:
    if spec.calico_network is None:
        return []
    return _check_choice("host-ports", "spec.calicoNetwork.hostPorts", spec.calico_network.host_ports, HostPortsType)


def check_multi_interface_mode(spec: InstallationSpec) -> List[Violation]:
    if spec.calico_network is None:
        return []
    return _check_choice(
        "multi-interface-mode",
        "spec.calicoNetwork.multiInterfaceMode",
        spec.calico_network.multi_interface_mode,
        MultiInterfaceMode,
    )


def check_container_ip_forwarding(spec: InstallationSpec) -> List[Violation]:
    if spec.calico_network is None:
        return []
    return _check_choice(
        "container-ip-forwarding",
        "spec.calicoNetwork.containerIPForwarding",
        spec.calico_network.container_ip_forwarding,
        ContainerIPForwardingType,
    )


def _check_autodetection(field: str, method: NodeAddressAutodetection) -> List[Violation]:
    violations = []

    configured = [
        alias
        for attr, alias in AUTODETECTION_METHODS.items()
        if getattr(method, attr) is not None and not (attr == "cidrs" and not method.cidrs)
    ]
    if len(configured) > 1:
        violations.append(
            Violation(
                "node-address-autodetection-methods",
                ViolationKind.ILLEGAL_COMBINATION,
                field,
                configured,
                f"{field} may specify only one method, got {', '.join(configured)}",
            )
        )

    if method.kubernetes is not None:
        violations.extend(
            _check_choice(
                "node-address-autodetection-kubernetes",
                f"{field}.kubernetes",
                method.kubernetes,
                KubernetesAutodetectionMethod,
            )
        )

    for attr in ("interface", "skip_interface"):
        pattern = getattr(method, attr)
        if pattern is None:
            continue
        try:
            validate_regex(pattern)
        except ValueError as e:
            violations.append(
                Violation(
                    "node-address-autodetection-regex",
                    ViolationKind.MALFORMED,
                    f"{field}.{AUTODETECTION_METHODS[attr]}",
                    pattern,
                    str(e),
                )
            )

    if method.can_reach is not None:
        try:
            validate_ip(method.can_reach)
        except ValueError as e:
            violations.append(
                Violation(
                    "node-address-autodetection-can-reach",
                    ViolationKind.MALFORMED,
                    f"{field}.canReach",
                    method.can_reach,
                    str(e),
                )
            )

    for index, cidr in enumerate(method.cidrs or []):
        try:
            parse_cidr(cidr)
        except ValueError as e:
            violations.append(
                Violation(
                    "node-address-autodetection-cidrs",
                    ViolationKind.MALFORMED,
                    f"{field}.cidrs[{index}]",
                    cidr,
                    str(e),
                )
            )

    return violations


def check_node_address_autodetection(spec: InstallationSpec) -> List[Violation]:
    network = spec.calico_network
    if network is None:
        return []

    violations = []
    if network.node_address_autodetection_v4 is not None:
        violations.extend(
            _check_autodetection(
                "spec.calicoNetwork.nodeAddressAutodetectionV4", network.node_address_autodetection_v4
            )
        )
    if network.node_address_autodetection_v6 is not None:
        violations.extend(
            _check_autodetection(
                "spec.calicoNetwork.nodeAddressAutodetectionV6", network.node_address_autodetection_v6
            )
        )
    return violations


# IP pools


def check_ip_pool_count(spec: InstallationSpec) -> List[Violation]:
    pools = _pools(spec)
    if len(pools) > MAX_IP_POOLS:
        return [
            Violation(
                "ippool-count",
                ViolationKind.OUT_OF_RANGE,
                "spec.calicoNetwork.ipPools",
                len(pools),
                f"at most {MAX_IP_POOLS} IP pools are allowed, one per IP version; got {len(pools)}",
            )
        ]

    violations = []
    seen: Dict[int, int] = {}
    for index, pool in enumerate(pools):
        network = _pool_network(pool)
        if network is None:
            continue
        if network.version in seen:
            violations.append(
                Violation(
                    "ippool-per-family",
                    ViolationKind.ILLEGAL_COMBINATION,
                    f"{_pool_path(index)}.cidr",
                    pool.cidr,
                    f"multiple IPv{network.version} IP pools are not allowed",
                )
            )
        else:
            seen[network.version] = index
    return violations


def check_ip_pool_cidrs(spec: InstallationSpec) -> List[Violation]:
    violations = []
    for index, pool in enumerate(_pools(spec)):
        try:
            parse_cidr(pool.cidr)
        except ValueError as e:
            violations.append(
                Violation(
                    "ippool-cidr",
                    ViolationKind.MALFORMED,
                    f"{_pool_path(index)}.cidr",
                    pool.cidr,
                    f"ipPool.cidr ({pool.cidr}) is invalid: {e}",
                )
            )
    return violations


def check_ip_pool_block_sizes(spec: InstallationSpec) -> List[Violation]:
    """Block sizes must be within the family's range and fit inside the pool."""
    violations = []
    for index, pool in enumerate(_pools(spec)):
        network = _pool_network(pool)
        if pool.block_size is None or network is None:
            continue

        field = f"{_pool_path(index)}.blockSize"
        low, high = block_size_range(network.version)
        if pool.block_size < low or pool.block_size > high:
            violations.append(
                Violation(
                    "ippool-block-size-range",
                    ViolationKind.OUT_OF_RANGE,
                    field,
                    pool.block_size,
                    f"ipPool.blockSize must be between {low} and {high} for IPv{network.version} pools",
                )
            )
        elif network.prefixlen > pool.block_size:
            violations.append(
                Violation(
                    "ippool-block-size-contained",
                    ViolationKind.OUT_OF_RANGE,
                    field,
                    pool.block_size,
                    f"IP pool size is too small; the /{network.prefixlen} pool cannot hold a "
                    f"/{pool.block_size} block",
                )
            )
    return violations


def check_ip_pool_encapsulation(spec: InstallationSpec) -> List[Violation]:
    violations = []
    for index, pool in enumerate(_pools(spec)):
        if not pool.encapsulation:
            continue

        field = f"{_pool_path(index)}.encapsulation"
        invalid = _check_choice("ippool-encapsulation", field, pool.encapsulation, EncapsulationType)
        if invalid:
            violations.extend(invalid)
            continue

        network = _pool_network(pool)
        if network is not None and network.version == 6 and pool.encapsulation != EncapsulationType.NONE.value:
            violations.append(
                Violation(
                    "ippool-ipv6-encapsulation",
                    ViolationKind.ILLEGAL_COMBINATION,
                    field,
                    pool.encapsulation,
                    f"encapsulation is not supported by IPv6 pools, but it is set for {pool.cidr}",
                )
            )
    return violations


def check_ipip_requires_bgp(spec: InstallationSpec) -> List[Violation]:
    """IPIP and IPIPCrossSubnet both rely on BGP-distributed routes."""
    if spec.calico_network is None or spec.calico_network.bgp != BGPOption.DISABLED.value:
        return []

    violations = []
    for index, pool in enumerate(_pools(spec)):
        if pool.encapsulation in (encap.value for encap in IPIP_ENCAPSULATIONS):
            violations.append(
                Violation(
                    "ipip-requires-bgp",
                    ViolationKind.ILLEGAL_COMBINATION,
                    f"{_pool_path(index)}.encapsulation",
                    pool.encapsulation,
                    f"{pool.encapsulation} encapsulation requires that BGP is enabled",
                )
            )
    return violations


def check_ip_pool_nat_outgoing(spec: InstallationSpec) -> List[Violation]:
    violations = []
    for index, pool in enumerate(_pools(spec)):
        if pool.nat_outgoing:
            violations.extend(
                _check_choice(
                    "ippool-nat-outgoing", f"{_pool_path(index)}.natOutgoing", pool.nat_outgoing, NATOutgoingType
                )
            )
    return violations


def check_ip_pool_node_selectors(spec: InstallationSpec) -> List[Violation]:
    violations = []
    for index, pool in enumerate(_pools(spec)):
        if not pool.node_selector:
            violations.append(
                Violation(
                    "ippool-node-selector",
                    ViolationKind.MISSING,
                    f"{_pool_path(index)}.nodeSelector",
                    pool.node_selector,
                    "ipPool.nodeSelector should not be empty",
                )
            )
    return violations


RULES: List[Rule] = [
    check_cni_type,
    check_variant,
    check_kubernetes_provider,
    check_calico_network_plugin,
    check_plugin_provider,
    check_bgp,
    check_host_ports,
    check_multi_interface_mode,
    check_container_ip_forwarding,
    check_node_address_autodetection,
    check_ip_pool_count,
    check_ip_pool_cidrs,
    check_ip_pool_block_sizes,
    check_ip_pool_encapsulation,
    check_ipip_requires_bgp,
    check_ip_pool_nat_outgoing,
    check_ip_pool_node_selectors,
    check_flex_volume_path,
    check_node_update_strategy,
    check_control_plane_node_selector,
]


def collect_violations(instance: Installation) -> List[Violation]:
    """
    Run every rule against an Installation.

    Args:
        instance: Installation to check; it is not modified

    Returns:
        All violations found, in rule order. Empty if the Installation is valid.
    """
    violations: List[Violation] = []
    for rule in RULES:
        violations.extend(rule(instance.spec))

    if violations:
        logger.debug(
            "Installation %s has %d violation(s): %s",
            instance.metadata.name,
            len(violations),
            ", ".join(v.rule for v in violations),
        )
    return violations


def validate_custom_resource(instance: Installation) -> None:
    """
    Validate an Installation.

    Args:
        instance: Installation to validate, normally after fill_defaults()

    Raises:
        InstallationValidationError: If any rule is violated
    """
    violations = collect_violations(instance)
    if violations:
        raise InstallationValidationError(violations)
