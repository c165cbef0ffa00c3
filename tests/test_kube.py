import unittest
from unittest.mock import MagicMock, patch
import sys
import os

# Add lib to path using relative paths
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(os.path.join(project_root, "lib"))

from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from tfgc_lib import kube
from tfgc_lib.errors import QueryError, SetupError


def make_job(name, active):
    job = MagicMock()
    job.metadata.name = name
    job.status.active = active
    return job


class TestListTerraforms(unittest.TestCase):
    def setUp(self):
        self.ctx = kube.KubeContext(
            custom_api=MagicMock(),
            batch_api=MagicMock(),
            namespace="jx",
        )

    def test_list_passes_selector_and_parses_items(self):
        self.ctx.custom_api.list_namespaced_custom_object.return_value = {
            "items": [
                {"metadata": {"name": "tf-pr-2", "creationTimestamp": "2024-06-01T09:00:00Z"}},
                {"metadata": {"name": "tf-pr-1", "creationTimestamp": "2024-06-01T08:00:00Z",
                              "labels": {"kind": "test"}}},
            ]
        }

        resources = kube.list_terraforms(self.ctx, "terraforms", "kind=test")

        self.ctx.custom_api.list_namespaced_custom_object.assert_called_once_with(
            group="tf.isaaguilar.com",
            version="v1alpha1",
            namespace="jx",
            plural="terraforms",
            label_selector="kind=test",
            _request_timeout=None,
        )
        # Enumeration order is preserved
        self.assertEqual([r.name for r in resources], ["tf-pr-2", "tf-pr-1"])
        self.assertEqual(resources[1].labels, {"kind": "test"})

    def test_empty_list(self):
        self.ctx.custom_api.list_namespaced_custom_object.return_value = {"items": []}
        self.assertEqual(kube.list_terraforms(self.ctx, "terraforms", "kind=test"), [])

    def test_not_found_is_empty(self):
        self.ctx.custom_api.list_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")
        self.assertEqual(kube.list_terraforms(self.ctx, "terraforms", "kind=test"), [])

    def test_api_error_raises_query_error(self):
        self.ctx.custom_api.list_namespaced_custom_object.side_effect = ApiException(status=403, reason="Forbidden")
        with self.assertRaises(QueryError) as cm:
            kube.list_terraforms(self.ctx, "terraforms", "kind=test")
        self.assertIn("Forbidden", str(cm.exception))
        self.assertEqual(cm.exception.namespace, "jx")
        self.assertIsInstance(cm.exception.__cause__, ApiException)

    def test_connection_error_raises_query_error(self):
        self.ctx.custom_api.list_namespaced_custom_object.side_effect = ConnectionError("refused")
        with self.assertRaises(QueryError):
            kube.list_terraforms(self.ctx, "terraforms", "kind=test")

    def test_malformed_item_raises_query_error(self):
        self.ctx.custom_api.list_namespaced_custom_object.return_value = {
            "items": [{"metadata": {"name": "tf-pr-1"}}]
        }
        with self.assertRaises(QueryError):
            kube.list_terraforms(self.ctx, "terraforms", "kind=test")

    def test_request_timeout_is_forwarded(self):
        self.ctx.request_timeout = 30.0
        self.ctx.custom_api.list_namespaced_custom_object.return_value = {"items": []}
        kube.list_terraforms(self.ctx, "terraforms", "kind=test")
        kwargs = self.ctx.custom_api.list_namespaced_custom_object.call_args.kwargs
        self.assertEqual(kwargs["_request_timeout"], 30.0)


class TestDeleteActiveTerraformJobs(unittest.TestCase):
    def setUp(self):
        self.ctx = kube.KubeContext(
            custom_api=MagicMock(),
            batch_api=MagicMock(),
            namespace="jx",
        )

    @patch("builtins.print")
    def test_only_active_jobs_are_deleted(self, _print):
        self.ctx.batch_api.list_namespaced_job.return_value.items = [
            make_job("tf-pr-42-plan", 1),
            make_job("tf-pr-42-init", None),
            make_job("tf-pr-42-apply", 0),
        ]

        deleted = kube.delete_active_terraform_jobs(self.ctx, "tf-pr-42")

        self.assertEqual(deleted, ["tf-pr-42-plan"])
        self.ctx.batch_api.list_namespaced_job.assert_called_once_with(
            namespace="jx",
            label_selector="terraforms.tf.isaaguilar.com/resourceName=tf-pr-42",
            _request_timeout=None,
        )
        self.ctx.batch_api.delete_namespaced_job.assert_called_once_with(
            name="tf-pr-42-plan",
            namespace="jx",
            propagation_policy="Background",
            _request_timeout=None,
        )

    def test_no_jobs(self):
        self.ctx.batch_api.list_namespaced_job.return_value.items = []
        self.assertEqual(kube.delete_active_terraform_jobs(self.ctx, "tf-pr-42"), [])
        self.ctx.batch_api.delete_namespaced_job.assert_not_called()

    @patch("builtins.print")
    def test_job_already_gone_counts_as_deleted(self, _print):
        self.ctx.batch_api.list_namespaced_job.return_value.items = [make_job("tf-pr-42-plan", 1)]
        self.ctx.batch_api.delete_namespaced_job.side_effect = ApiException(status=404, reason="Not Found")
        self.assertEqual(kube.delete_active_terraform_jobs(self.ctx, "tf-pr-42"), ["tf-pr-42-plan"])

    @patch("builtins.print")
    def test_delete_failure_propagates(self, _print):
        self.ctx.batch_api.list_namespaced_job.return_value.items = [
            make_job("tf-pr-42-plan", 1),
            make_job("tf-pr-42-apply", 1),
        ]
        self.ctx.batch_api.delete_namespaced_job.side_effect = ApiException(status=500, reason="Internal Error")
        with self.assertRaises(ApiException):
            kube.delete_active_terraform_jobs(self.ctx, "tf-pr-42")
        self.assertEqual(self.ctx.batch_api.delete_namespaced_job.call_count, 1)


@patch("tfgc_lib.kube.client.BatchV1Api")
@patch("tfgc_lib.kube.client.CustomObjectsApi")
class TestConnect(unittest.TestCase):
    @patch("tfgc_lib.kube.k8s_config.load_incluster_config")
    def test_explicit_namespace(self, _incluster, mock_custom, mock_batch):
        ctx = kube.connect("jx", request_timeout=10)
        self.assertEqual(ctx.namespace, "jx")
        self.assertEqual(ctx.request_timeout, 10)
        self.assertIs(ctx.custom_api, mock_custom.return_value)
        self.assertIs(ctx.batch_api, mock_batch.return_value)

    @patch("tfgc_lib.kube._in_cluster_namespace", return_value="jx-staging")
    @patch("tfgc_lib.kube.k8s_config.load_incluster_config")
    def test_in_cluster_ambient_namespace(self, _incluster, _ns, *_):
        self.assertEqual(kube.connect().namespace, "jx-staging")

    @patch("tfgc_lib.kube._kubeconfig_namespace", return_value="dev")
    @patch("tfgc_lib.kube.k8s_config.load_kube_config")
    @patch("tfgc_lib.kube.k8s_config.load_incluster_config", side_effect=ConfigException("not in cluster"))
    def test_kubeconfig_fallback(self, _incluster, load_kube_config, _ns, *_):
        ctx = kube.connect()
        load_kube_config.assert_called_once()
        self.assertEqual(ctx.namespace, "dev")

    @patch("tfgc_lib.kube._kubeconfig_namespace", return_value=None)
    @patch("tfgc_lib.kube.k8s_config.load_kube_config")
    @patch("tfgc_lib.kube.k8s_config.load_incluster_config", side_effect=ConfigException("not in cluster"))
    def test_default_namespace(self, *_):
        self.assertEqual(kube.connect().namespace, "default")

    @patch("tfgc_lib.kube.k8s_config.load_kube_config", side_effect=ConfigException("no kubeconfig"))
    @patch("tfgc_lib.kube.k8s_config.load_incluster_config", side_effect=ConfigException("not in cluster"))
    def test_no_configuration_raises_setup_error(self, *_):
        with self.assertRaises(SetupError):
            kube.connect("jx")


if __name__ == '__main__':
    unittest.main()
