"""Tests for Kubernetes API client construction."""

from unittest.mock import patch

import pytest
from kubernetes.config import ConfigException

from pod_analyzer.services.kube_client import KubeConfigError, build_api_client


class TestExplicitKubeconfig:
    def test_missing_file(self, tmp_path):
        """Test a kubeconfig path that does not exist is fatal."""
        with pytest.raises(KubeConfigError, match="not found"):
            build_api_client(tmp_path / "config")

    def test_invalid_file(self, tmp_path):
        """Test an unparseable kubeconfig is fatal."""
        path = tmp_path / "config"
        path.write_text("not: [a kubeconfig")

        with patch(
            "pod_analyzer.services.kube_client.config.new_client_from_config",
            side_effect=ConfigException("Invalid kube-config file"),
        ):
            with pytest.raises(KubeConfigError, match="Invalid kube-config"):
                build_api_client(path)

    def test_loads_given_file(self, tmp_path):
        """Test the client is built from the given kubeconfig."""
        path = tmp_path / "config"
        path.write_text("apiVersion: v1\n")

        with (
            patch("pod_analyzer.services.kube_client.config.new_client_from_config") as new_client,
            patch("pod_analyzer.services.kube_client.client.CoreV1Api") as core_api,
        ):
            api = build_api_client(str(path))

        new_client.assert_called_once_with(config_file=str(path))
        core_api.assert_called_once_with(new_client.return_value)
        assert api is core_api.return_value


class TestDefaultConfiguration:
    def test_falls_back_to_kubeconfig(self):
        """Test the default kubeconfig is used outside a cluster."""
        with (
            patch(
                "pod_analyzer.services.kube_client.config.load_incluster_config",
                side_effect=ConfigException("Service host/port is not set."),
            ),
            patch("pod_analyzer.services.kube_client.config.load_kube_config") as load_kube,
            patch("pod_analyzer.services.kube_client.client.CoreV1Api"),
        ):
            build_api_client()

        load_kube.assert_called_once()

    def test_no_configuration(self):
        """Test missing in-cluster and default configuration is fatal."""
        with (
            patch(
                "pod_analyzer.services.kube_client.config.load_incluster_config",
                side_effect=ConfigException("Service host/port is not set."),
            ),
            patch(
                "pod_analyzer.services.kube_client.config.load_kube_config",
                side_effect=ConfigException("Invalid kube-config file. No configuration found."),
            ),
        ):
            with pytest.raises(KubeConfigError):
                build_api_client()
