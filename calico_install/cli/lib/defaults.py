"""
Default values for Installation resources.

fill_defaults() mutates the Installation it is given and returns it. Values
already set by the user are never overwritten.
"""

import logging
from typing import Optional, Set

from calico_install.api.models import (
    BGPOption,
    CalicoNetworkSpec,
    CNIPluginType,
    CNISpec,
    ContainerIPForwardingType,
    DaemonSetUpdateStrategyType,
    EncapsulationType,
    HostPortsType,
    Installation,
    IPPool,
    MultiInterfaceMode,
    NATOutgoingType,
    NodeAddressAutodetection,
    Provider,
    RollingUpdateDaemonSet,
    Variant,
)
from calico_install.cli.lib.config import CalicoInstallConfig, load_config
from calico_install.cli.lib.errors import DefaultingError
from calico_install.cli.lib.validators import allowed_values, is_member, parse_cidr

logger = logging.getLogger(__name__)

DEFAULT_FLEX_VOLUME_PATH = "/usr/libexec/kubernetes/kubelet-plugins/volume/exec/"

FLEX_VOLUME_PATHS = {
    Provider.GKE: "/home/kubernetes/flexvolume/",
    Provider.AKS: "/etc/kubernetes/volumeplugins/",
    Provider.OPENSHIFT: "/etc/kubernetes/kubelet-plugins/volume/exec/",
    Provider.DOCKER_ENTERPRISE: "/var/lib/kubelet/volumeplugins/",
}

# CNI plugin used when spec.cni is omitted.
PROVIDER_PLUGINS = {
    Provider.EKS: CNIPluginType.AMAZON_VPC,
    Provider.GKE: CNIPluginType.GKE,
    Provider.AKS: CNIPluginType.AZURE_VNET,
}

# Providers whose network does not carry BGP between nodes.
BGP_DISABLED_PROVIDERS = {Provider.EKS, Provider.AKS}


def _fill_ip_pool(pool: IPPool, bgp: str, cfg: CalicoInstallConfig) -> None:
    if not pool.nat_outgoing:
        pool.nat_outgoing = NATOutgoingType.ENABLED.value
    if not pool.node_selector:
        pool.node_selector = cfg.default_node_selector

    try:
        network = parse_cidr(pool.cidr)
    except ValueError:
        # Left for the validator to report.
        return

    if network.version == 4:
        if not pool.encapsulation:
            if bgp == BGPOption.ENABLED.value:
                pool.encapsulation = EncapsulationType.IPIP.value
            else:
                pool.encapsulation = EncapsulationType.VXLAN.value
        if pool.block_size is None:
            pool.block_size = cfg.default_ipv4_block_size
    else:
        if not pool.encapsulation:
            pool.encapsulation = EncapsulationType.NONE.value
        if pool.block_size is None:
            pool.block_size = cfg.default_ipv6_block_size


def _pool_versions(network: CalicoNetworkSpec) -> Set[int]:
    versions = set()
    for pool in network.ip_pools:
        try:
            versions.add(parse_cidr(pool.cidr).version)
        except ValueError:
            continue
    return versions


def _fill_calico_network(network: CalicoNetworkSpec, provider: Provider, cfg: CalicoInstallConfig) -> None:
    if network.bgp is None:
        if provider in BGP_DISABLED_PROVIDERS:
            network.bgp = BGPOption.DISABLED.value
        else:
            network.bgp = BGPOption.ENABLED.value

    if not network.ip_pools:
        network.ip_pools = [IPPool(cidr=cfg.default_ipv4_pool_cidr)]

    for pool in network.ip_pools:
        _fill_ip_pool(pool, network.bgp, cfg)

    versions = _pool_versions(network)
    if 4 in versions and network.node_address_autodetection_v4 is None:
        network.node_address_autodetection_v4 = NodeAddressAutodetection(first_found=True)
    if 6 in versions and network.node_address_autodetection_v6 is None:
        network.node_address_autodetection_v6 = NodeAddressAutodetection(first_found=True)

    if network.host_ports is None:
        network.host_ports = HostPortsType.ENABLED.value
    if network.multi_interface_mode is None:
        network.multi_interface_mode = MultiInterfaceMode.NONE.value
    if network.container_ip_forwarding is None:
        network.container_ip_forwarding = ContainerIPForwardingType.DISABLED.value


def fill_defaults(instance: Installation, cfg: Optional[CalicoInstallConfig] = None) -> Installation:
    """
    Populate unset Installation fields with provider-appropriate defaults.

    Args:
        instance: Installation to fill in; modified in place
        cfg: Config to take pool defaults from (default: load_config())

    Returns:
        The same Installation

    Raises:
        DefaultingError: If the kubernetesProvider is not recognized
    """
    spec = instance.spec
    if not is_member(spec.kubernetes_provider, Provider):
        raise DefaultingError(
            f"spec.kubernetesProvider {spec.kubernetes_provider!r} is not supported; "
            f"must be one of {allowed_values(Provider)}"
        )
    provider = Provider(spec.kubernetes_provider)
    cfg = cfg or load_config()

    if not spec.variant:
        spec.variant = Variant.CALICO.value

    if spec.registry and not spec.registry.endswith("/"):
        spec.registry += "/"

    if spec.cni is None:
        spec.cni = CNISpec(type=PROVIDER_PLUGINS.get(provider, CNIPluginType.CALICO).value)

    if not spec.flex_volume_path:
        spec.flex_volume_path = FLEX_VOLUME_PATHS.get(provider, DEFAULT_FLEX_VOLUME_PATH)

    strategy = spec.node_update_strategy
    if not strategy.type:
        strategy.type = DaemonSetUpdateStrategyType.ROLLING_UPDATE.value
    if strategy.type == DaemonSetUpdateStrategyType.ROLLING_UPDATE.value and strategy.rolling_update is None:
        strategy.rolling_update = RollingUpdateDaemonSet(max_unavailable=1)

    if spec.cni.type == CNIPluginType.CALICO.value:
        if spec.calico_network is None:
            spec.calico_network = CalicoNetworkSpec()
        _fill_calico_network(spec.calico_network, provider, cfg)

    logger.debug(
        "Filled defaults for Installation %s (provider=%s, cni=%s)",
        instance.metadata.name,
        provider.value or "none",
        spec.cni.type,
    )
    return instance
