"""
Unit tests for Installation validation.
"""

import pytest

from calico_install.api.models import CalicoNetworkSpec, CNISpec, Installation, IPPool, NodeAddressAutodetection
from calico_install.cli.lib.defaults import fill_defaults
from calico_install.cli.lib.errors import InstallationValidationError
from calico_install.cli.lib.validation import (
    ViolationKind,
    check_host_ports,
    check_ip_pool_block_sizes,
    check_ipip_requires_bgp,
    collect_violations,
    validate_custom_resource,
)


def _pool(cidr="192.168.0.0/24", block_size=None, encapsulation="None"):
    return IPPool(
        cidr=cidr,
        block_size=block_size,
        encapsulation=encapsulation,
        nat_outgoing="Enabled",
        node_selector="all()",
    )


def _rules(instance):
    return [v.rule for v in collect_violations(instance)]


class TestBaseline:
    """Tests for the unmodified baseline Installation."""

    @pytest.mark.unit
    def test_baseline_is_valid(self, installation):
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_validation_is_idempotent(self, installation):
        installation.spec.cni.type = "bad"
        first = collect_violations(installation)
        second = collect_violations(installation)
        assert first == second
        assert len(first) == 1

    @pytest.mark.unit
    def test_validation_does_not_mutate(self, installation):
        installation.spec.calico_network.ip_pools = [_pool(block_size=33)]
        before = installation.model_dump()
        collect_violations(installation)
        assert installation.model_dump() == before


class TestBlockSize:
    """Tests for IP pool block size rules."""

    @pytest.mark.unit
    def test_block_size_must_fit_in_pool(self, installation):
        installation.spec.calico_network.bgp = "Enabled"
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.0/27", block_size=26)]
        with pytest.raises(InstallationValidationError) as exc:
            validate_custom_resource(installation)
        violation = exc.value.violations[0]
        assert violation.rule == "ippool-block-size-contained"
        assert violation.kind == ViolationKind.OUT_OF_RANGE
        assert violation.field == "spec.calicoNetwork.ipPools[0].blockSize"
        assert violation.value == 26

        installation.spec.calico_network.ip_pools[0].cidr = "192.168.0.0/26"
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_block_size_32_in_small_pool(self, installation):
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.0/27", block_size=32)]
        validate_custom_resource(installation)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "block_size, valid",
        [(19, False), (20, True), (26, True), (32, True), (33, False)],
    )
    def test_ipv4_block_size_bounds(self, installation, block_size, valid):
        installation.spec.calico_network.bgp = "Enabled"
        installation.spec.calico_network.ip_pools = [_pool("192.0.0.0/8", block_size=block_size)]
        violations = check_ip_pool_block_sizes(installation.spec)
        if valid:
            assert violations == []
        else:
            assert [v.rule for v in violations] == ["ippool-block-size-range"]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "block_size, valid",
        [(115, False), (116, True), (122, True), (128, True), (129, False)],
    )
    def test_ipv6_block_size_bounds(self, installation, block_size, valid):
        installation.spec.calico_network.ip_pools = [_pool("fd00::/48", block_size=block_size)]
        assert (check_ip_pool_block_sizes(installation.spec) == []) is valid

    @pytest.mark.unit
    def test_unset_block_size_is_not_checked(self, installation):
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.0/30")]
        validate_custom_resource(installation)


class TestCIDR:
    """Tests for IP pool CIDR parsing."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "cidr",
        [
            "",
            "192.168.0.0",
            "192.168.0.0/33",
            "not-a-cidr/24",
            "10.0.0.0/8/8",
            "192.168.0.0/255.255.255.0",
            "10.0.0.0/0.0.255.255",
            "fe80::1%eth0/64",
        ],
    )
    def test_invalid_cidr(self, installation, cidr):
        installation.spec.calico_network.ip_pools = [_pool(cidr, block_size=26)]
        violations = collect_violations(installation)
        assert [v.rule for v in violations] == ["ippool-cidr"]
        assert violations[0].kind == ViolationKind.MALFORMED
        assert violations[0].value == cidr

    @pytest.mark.unit
    def test_host_bits_are_accepted(self, installation):
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.1/24", block_size=26)]
        validate_custom_resource(installation)


class TestIPPools:
    """Tests for IP pool count and per-pool fields."""

    @pytest.mark.unit
    def test_one_pool_per_family(self, installation):
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.0/24"), _pool("fd00::/48")]
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_two_ipv4_pools(self, installation):
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.0/24"), _pool("10.0.0.0/16")]
        assert _rules(installation) == ["ippool-per-family"]

    @pytest.mark.unit
    def test_too_many_pools(self, installation):
        installation.spec.calico_network.ip_pools = [
            _pool("192.168.0.0/24"),
            _pool("fd00::/48"),
            _pool("10.0.0.0/16"),
        ]
        assert "ippool-count" in _rules(installation)

    @pytest.mark.unit
    def test_empty_node_selector(self, installation):
        pool = _pool()
        pool.node_selector = ""
        installation.spec.calico_network.ip_pools = [pool]
        violations = collect_violations(installation)
        assert [v.rule for v in violations] == ["ippool-node-selector"]
        assert violations[0].kind == ViolationKind.MISSING

    @pytest.mark.unit
    def test_invalid_encapsulation(self, installation):
        installation.spec.calico_network.ip_pools = [_pool(encapsulation="ipip")]
        assert _rules(installation) == ["ippool-encapsulation"]

    @pytest.mark.unit
    def test_invalid_nat_outgoing(self, installation):
        pool = _pool()
        pool.nat_outgoing = "Yes"
        installation.spec.calico_network.ip_pools = [pool]
        assert _rules(installation) == ["ippool-nat-outgoing"]

    @pytest.mark.unit
    def test_ipv6_pool_rejects_encapsulation(self, installation):
        installation.spec.calico_network.ip_pools = [_pool("fd00::/48", encapsulation="VXLAN")]
        assert _rules(installation) == ["ippool-ipv6-encapsulation"]


class TestEncapsulationRequiresBGP:
    """IPIP and IPIPCrossSubnet need BGP."""

    @pytest.mark.unit
    @pytest.mark.parametrize("encapsulation", ["IPIP", "IPIPCrossSubnet"])
    def test_ipip_with_bgp_disabled(self, installation, encapsulation):
        installation.spec.calico_network.bgp = "Disabled"
        installation.spec.calico_network.ip_pools = [_pool(encapsulation=encapsulation)]
        with pytest.raises(InstallationValidationError) as exc:
            validate_custom_resource(installation)
        violation = exc.value.violations[0]
        assert violation.rule == "ipip-requires-bgp"
        assert violation.kind == ViolationKind.ILLEGAL_COMBINATION
        assert violation.value == encapsulation

    @pytest.mark.unit
    @pytest.mark.parametrize("encapsulation", ["IPIP", "IPIPCrossSubnet"])
    def test_ipip_with_bgp_enabled(self, installation, encapsulation):
        installation.spec.calico_network.bgp = "Enabled"
        installation.spec.calico_network.ip_pools = [_pool(encapsulation=encapsulation)]
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_ipip_with_bgp_unset(self, installation):
        installation.spec.calico_network.bgp = None
        installation.spec.calico_network.ip_pools = [_pool(encapsulation="IPIP")]
        assert check_ipip_requires_bgp(installation.spec) == []

    @pytest.mark.unit
    @pytest.mark.parametrize("encapsulation", ["VXLAN", "VXLANCrossSubnet", "None"])
    def test_other_encapsulation_with_bgp_disabled(self, installation, encapsulation):
        installation.spec.calico_network.bgp = "Disabled"
        installation.spec.calico_network.ip_pools = [_pool(encapsulation=encapsulation)]
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_invalid_bgp_value(self, installation):
        installation.spec.calico_network.bgp = "enabled"
        assert _rules(installation) == ["bgp"]


class TestFlexVolumePath:
    """Tests for spec.flexVolumePath."""

    @pytest.mark.unit
    def test_relative_path(self, installation):
        installation.spec.flex_volume_path = "foo/bar/baz"
        with pytest.raises(InstallationValidationError, match="not an absolute path"):
            validate_custom_resource(installation)

    @pytest.mark.unit
    @pytest.mark.parametrize("path", ["/usr/libexec/kubernetes/kubelet-plugins/volume/exec/", "None", ""])
    def test_accepted_paths(self, installation, path):
        installation.spec.flex_volume_path = path
        validate_custom_resource(installation)


class TestHostPorts:
    """Tests for spec.calicoNetwork.hostPorts."""

    @pytest.mark.unit
    @pytest.mark.parametrize("host_ports", [None, "Enabled", "Disabled"])
    def test_valid_host_ports(self, installation, host_ports):
        installation.spec.calico_network.host_ports = host_ports
        validate_custom_resource(installation)

    @pytest.mark.unit
    @pytest.mark.parametrize("host_ports", ["NotValid", "enabled", ""])
    def test_invalid_host_ports(self, installation, host_ports):
        installation.spec.calico_network.host_ports = host_ports
        violations = check_host_ports(installation.spec)
        assert len(violations) == 1
        assert violations[0].field == "spec.calicoNetwork.hostPorts"
        assert violations[0].value == host_ports


class TestCNI:
    """Tests for spec.cni and spec.calicoNetwork."""

    @pytest.mark.unit
    @pytest.mark.parametrize("plugin", ["GKE", "AmazonVPC", "AzureVNET"])
    def test_calico_network_requires_calico_plugin(self, installation, plugin):
        installation.spec.cni.type = plugin
        violations = collect_violations(installation)
        assert [v.rule for v in violations] == ["calico-network-plugin"]
        assert violations[0].kind == ViolationKind.ILLEGAL_COMBINATION

    @pytest.mark.unit
    def test_missing_cni(self, installation):
        installation.spec.calico_network = None
        installation.spec.cni = None
        violations = collect_violations(installation)
        assert [v.rule for v in violations] == ["cni-required"]
        assert violations[0].kind == ViolationKind.MISSING

    @pytest.mark.unit
    def test_empty_cni_type(self, installation):
        installation.spec.calico_network = None
        installation.spec.cni = CNISpec()
        with pytest.raises(InstallationValidationError, match="spec.cni.type must be specified"):
            validate_custom_resource(installation)

    @pytest.mark.unit
    @pytest.mark.parametrize("plugin", ["bad", "calico", "Amazonvpc"])
    def test_unknown_cni_type(self, installation, plugin):
        installation.spec.calico_network = None
        installation.spec.cni = CNISpec(type=plugin)
        violations = collect_violations(installation)
        assert [v.rule for v in violations] == ["cni-type"]
        assert violations[0].kind == ViolationKind.MALFORMED

    @pytest.mark.unit
    @pytest.mark.parametrize("plugin", ["GKE", "AmazonVPC", "AzureVNET"])
    def test_vendor_plugins_without_calico_network(self, installation, plugin):
        installation.spec.calico_network = None
        installation.spec.cni = CNISpec(type=plugin)
        validate_custom_resource(installation)


class TestPluginProvider:
    """Cross validation of spec.cni.type and spec.kubernetesProvider."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "provider, plugin, valid",
        [
            ("EKS", "GKE", False),
            ("EKS", "AmazonVPC", True),
            ("EKS", "AzureVNET", False),
            ("EKS", "Calico", True),
            ("GKE", "GKE", True),
            ("GKE", "AmazonVPC", False),
            ("GKE", "AzureVNET", False),
            ("GKE", "Calico", True),
            ("AKS", "GKE", False),
            ("AKS", "AmazonVPC", False),
            ("AKS", "AzureVNET", True),
            ("AKS", "Calico", True),
            ("OpenShift", "GKE", False),
            ("OpenShift", "AmazonVPC", False),
            ("OpenShift", "AzureVNET", False),
            ("OpenShift", "Calico", True),
            ("DockerEnterprise", "GKE", False),
            ("DockerEnterprise", "AmazonVPC", False),
            ("DockerEnterprise", "AzureVNET", False),
            ("DockerEnterprise", "Calico", True),
            ("", "GKE", True),
            ("", "AmazonVPC", True),
            ("", "AzureVNET", True),
            ("", "Calico", True),
        ],
    )
    def test_plugin_provider_matrix(self, installation, provider, plugin, valid):
        installation.spec.calico_network = None
        installation.spec.kubernetes_provider = provider
        installation.spec.cni = CNISpec(type=plugin)
        violations = collect_violations(installation)
        if valid:
            assert violations == []
        else:
            assert [v.rule for v in violations] == ["cni-plugin-provider"]

    @pytest.mark.unit
    def test_unknown_provider(self, installation):
        installation.spec.kubernetes_provider = "eks"
        assert _rules(installation) == ["kubernetes-provider"]


class TestOtherFields:
    """Tests for the remaining top level and CalicoNetwork fields."""

    @pytest.mark.unit
    def test_unknown_variant(self, installation):
        installation.spec.variant = "Enterprise"
        assert _rules(installation) == ["variant"]

    @pytest.mark.unit
    def test_on_delete_update_strategy(self, installation):
        installation.spec.node_update_strategy.type = "OnDelete"
        assert _rules(installation) == ["node-update-strategy"]

    @pytest.mark.unit
    @pytest.mark.parametrize("label", ["kubernetes.io/os", "beta.kubernetes.io/os"])
    def test_control_plane_must_be_linux(self, installation, label):
        installation.spec.control_plane_node_selector = {label: "windows"}
        assert _rules(installation) == ["control-plane-os"]

        installation.spec.control_plane_node_selector = {label: "linux", "role": "infra"}
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_multi_interface_mode(self, installation):
        installation.spec.calico_network.multi_interface_mode = "Multus"
        validate_custom_resource(installation)
        installation.spec.calico_network.multi_interface_mode = "multus"
        assert _rules(installation) == ["multi-interface-mode"]

    @pytest.mark.unit
    def test_container_ip_forwarding(self, installation):
        installation.spec.calico_network.container_ip_forwarding = "Enabled"
        validate_custom_resource(installation)
        installation.spec.calico_network.container_ip_forwarding = "On"
        assert _rules(installation) == ["container-ip-forwarding"]


class TestNodeAddressAutodetection:
    """Tests for node address autodetection methods."""

    @pytest.mark.unit
    def test_single_method(self, installation):
        installation.spec.calico_network.node_address_autodetection_v4 = NodeAddressAutodetection(
            interface="eth.*"
        )
        validate_custom_resource(installation)

    @pytest.mark.unit
    def test_multiple_methods(self, installation):
        installation.spec.calico_network.node_address_autodetection_v4 = NodeAddressAutodetection(
            first_found=True, can_reach="8.8.8.8"
        )
        violations = collect_violations(installation)
        assert [v.rule for v in violations] == ["node-address-autodetection-methods"]
        assert violations[0].value == ["firstFound", "canReach"]

    @pytest.mark.unit
    def test_invalid_values(self, installation):
        installation.spec.calico_network.node_address_autodetection_v6 = NodeAddressAutodetection(
            skip_interface="eth[",
        )
        installation.spec.calico_network.node_address_autodetection_v4 = NodeAddressAutodetection(
            cidrs=["10.0.0.0/8", "bogus"],
        )
        assert sorted(_rules(installation)) == [
            "node-address-autodetection-cidrs",
            "node-address-autodetection-regex",
        ]

    @pytest.mark.unit
    def test_invalid_can_reach_and_kubernetes(self, installation):
        installation.spec.calico_network.node_address_autodetection_v4 = NodeAddressAutodetection(
            can_reach="example.invalid",
        )
        installation.spec.calico_network.node_address_autodetection_v6 = NodeAddressAutodetection(
            kubernetes="InternalIP",
        )
        assert _rules(installation) == [
            "node-address-autodetection-can-reach",
            "node-address-autodetection-kubernetes",
        ]


class TestErrorReporting:
    """Tests for accumulated violations."""

    @pytest.mark.unit
    def test_all_violations_are_reported(self, installation):
        installation.spec.flex_volume_path = "relative"
        installation.spec.calico_network.bgp = "Disabled"
        installation.spec.calico_network.host_ports = "NotValid"
        installation.spec.calico_network.ip_pools = [_pool("192.168.0.0/24", block_size=33, encapsulation="IPIP")]

        with pytest.raises(InstallationValidationError) as exc:
            validate_custom_resource(installation)

        rules = {v.rule for v in exc.value.violations}
        assert rules == {"host-ports", "ippool-block-size-range", "ipip-requires-bgp", "flex-volume-path"}
        assert "(and 3 more)" in str(exc.value)

    @pytest.mark.unit
    def test_error_is_value_error(self, installation):
        installation.spec.flex_volume_path = "relative"
        with pytest.raises(ValueError):
            validate_custom_resource(installation)

    @pytest.mark.unit
    def test_violation_to_dict(self, installation):
        installation.spec.flex_volume_path = "relative"
        violation = collect_violations(installation)[0]
        assert violation.to_dict() == {
            "rule": "flex-volume-path",
            "kind": "Malformed",
            "field": "spec.flexVolumePath",
            "value": "relative",
            "detail": "spec.flexVolumePath 'relative' is not an absolute path",
        }


class TestDefaultedInstallations:
    """Validation of Installations after defaults are filled in."""

    @pytest.mark.unit
    def test_calico_network_on_eks(self, config):
        instance = Installation()
        instance.spec.cni = CNISpec(type="Calico")
        instance.spec.variant = "TigeraSecureEnterprise"
        instance.spec.calico_network = CalicoNetworkSpec()
        instance.spec.kubernetes_provider = "EKS"

        fill_defaults(instance, config)
        validate_custom_resource(instance)

    @pytest.mark.unit
    @pytest.mark.parametrize("provider", ["", "EKS", "GKE", "AKS", "OpenShift", "DockerEnterprise"])
    def test_empty_installation_defaults_are_valid(self, config, provider):
        instance = Installation()
        instance.spec.kubernetes_provider = provider

        fill_defaults(instance, config)
        validate_custom_resource(instance)
