"""Tests for the Orchestrator facade.

Covers planning, ordered apply/delete of a rendered batch, namespace
reconciliation and the full undeploy flow, all against in-memory cluster
doubles.
"""

import logging

import pytest
import structlog
from conftest import PODS, SERVICES, RecordingApplier, live_object
from kubeorder import ExecutionReport, Operation, Orchestrator, UndeployRequest
from kubeorder.cluster.dynamic import KubernetesCluster
from kubeorder.cluster.kubectl import KubectlApplier
from kubeorder.config.settings import Settings
from kubeorder.core.errors import ConfigurationError, NamespaceNotClearedError
from kubeorder.lifecycle.reconciler import RetryPolicy
from kubeorder.ordering import CUSTOM_RESOURCE, KindOrder

BATCH = """\
apiVersion: v1
kind: Service
metadata:
  name: web
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
---
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
spec:
  group: example.com
  names:
    kind: Widget
    plural: widgets
  versions:
    - name: v1
---
apiVersion: example.com/v1
kind: Widget
metadata:
  name: w1
---
apiVersion: v1
kind: ConfigMap
metadata:
  name: cfg
  namespace: shared
"""

BROKEN_CRD_BATCH = """\
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: gadgets.example.com
spec:
  names: not-a-mapping
---
apiVersion: example.com/v1
kind: Gadget
metadata:
  name: g1
---
apiVersion: v1
kind: Service
metadata:
  name: web
"""


def kinds_called(applier):
    return [manifest.split("kind: ")[1].split("\n")[0] for _, _, manifest, _ in applier.calls]


@pytest.fixture
def settings():
    return Settings(reconcile_attempts=3, reconcile_interval_seconds=1.0, reconcile_grace_seconds=5.0)


@pytest.fixture
def applier():
    return RecordingApplier()


class TestPlan:
    """Tests for Orchestrator.plan."""

    def test_delete_plan(self, applier, settings):
        orchestrator = Orchestrator(applier, settings=settings)

        schedule = orchestrator.plan(BATCH, "prod", Operation.DELETE)

        assert [r.name for r in schedule] == ["w1", "web", "web", "widgets.example.com", "cfg"]
        assert [r.namespace for r in schedule] == ["prod", "prod", "prod", "prod", "shared"]
        assert [r.name for r in schedule.bucket(CUSTOM_RESOURCE)] == ["w1"]

    def test_apply_plan_creates_definition_first(self, applier, settings):
        orchestrator = Orchestrator(applier, settings=settings)

        schedule = orchestrator.plan(BATCH, "prod", Operation.APPLY)

        assert [kind for kind, _ in schedule.batches()] == [
            "ConfigMap",
            "CustomResourceDefinition",
            "Service",
            "Deployment",
            CUSTOM_RESOURCE,
        ]

    def test_custom_tables(self, applier, settings):
        orchestrator = Orchestrator(
            applier,
            settings=settings,
            delete_order=KindOrder(pre_order=("ConfigMap",), post_order=("Service",)),
        )

        schedule = orchestrator.plan(BATCH, "prod", Operation.DELETE)

        kinds = [kind for kind, _ in schedule.batches()]
        assert kinds[0] == "ConfigMap"
        assert kinds[-1] == "Service"


class TestApplyOrDelete:
    """Tests for Orchestrator.apply_or_delete."""

    def test_delete_batch_in_order(self, applier, settings):
        report = Orchestrator(applier, settings=settings).apply_or_delete(
            BATCH, "prod", wait=True, operation=Operation.DELETE
        )

        assert isinstance(report, ExecutionReport)
        assert report.success
        assert kinds_called(applier) == [
            "Widget",
            "Service",
            "Deployment",
            "CustomResourceDefinition",
            "ConfigMap",
        ]
        assert all(call[0] == "delete" for call in applier.calls)

    def test_accepts_document_list(self, applier, settings):
        documents = BATCH.split("---\n")

        report = Orchestrator(applier, settings=settings).apply(documents, "prod")

        assert report.total == 5
        assert kinds_called(applier)[-1] == "Widget"

    def test_unconvertible_definition_orders_instance_by_kind(self, applier, settings):
        """The instance is still deleted, under its own kind."""
        orchestrator = Orchestrator(applier, settings=settings)

        schedule = orchestrator.plan(BROKEN_CRD_BATCH, "prod", Operation.DELETE)
        report = orchestrator.delete(BROKEN_CRD_BATCH, "prod")

        assert schedule.bucket(CUSTOM_RESOURCE) == ()
        assert [r.name for r in schedule.bucket("Gadget")] == ["g1"]
        assert report.success
        assert kinds_called(applier) == ["Service", "Gadget", "CustomResourceDefinition"]

    def test_failures_do_not_raise(self, settings):
        applier = RecordingApplier(failures={"name: web": RuntimeError("rejected")})

        report = Orchestrator(applier, settings=settings).apply_or_delete(BATCH, "prod")

        assert report.total == 5
        assert len(report.failures) == 2
        assert {f.kind for f in report.failures} == {"Service", "Deployment"}


class TestReconcileNamespace:
    """Tests for Orchestrator.reconcile_namespace."""

    def test_requires_live_cluster(self, applier, settings):
        with pytest.raises(ConfigurationError):
            Orchestrator(applier, settings=settings).reconcile_namespace("prod", "my-app")

    def test_uses_settings_for_budget(self, applier, settings, stub_cluster, fake_sleep):
        cluster = stub_cluster({SERVICES: [live_object("Service", "web")]})
        cluster.sticky.add("web")
        orchestrator = Orchestrator(
            applier,
            cluster,
            settings,
            policy=RetryPolicy.from_settings(settings, sleep=fake_sleep),
        )

        with pytest.raises(NamespaceNotClearedError) as exc_info:
            orchestrator.reconcile_namespace("default", "my-app")

        assert exc_info.value.attempts == 3
        assert fake_sleep.calls == [1.0, 1.0]

    def test_converges(self, applier, settings, stub_cluster, fake_sleep):
        cluster = stub_cluster({SERVICES: [live_object("Service", "web")]})
        orchestrator = Orchestrator(
            applier, cluster, settings, policy=RetryPolicy.from_settings(settings, sleep=fake_sleep)
        )

        orchestrator.reconcile_namespace("default", "my-app")

        assert cluster.deleted == ["web"]
        assert fake_sleep.calls == [1.0, 5.0]


class TestUndeploy:
    """Tests for Orchestrator.undeploy."""

    def test_full_undeploy(self, applier, settings, stub_cluster, fake_sleep):
        cluster = stub_cluster(
            {
                SERVICES: [live_object("Service", "leftover")],
                PODS: [
                    live_object(
                        "Pod",
                        "db-0",
                        labels={"kubeorder.io/app-slug": "my-app"},
                        spec={"volumes": [{"name": "d", "persistentVolumeClaim": {"claimName": "data"}}]},
                    )
                ],
            }
        )
        orchestrator = Orchestrator(
            applier, cluster, settings, policy=RetryPolicy.from_settings(settings, sleep=fake_sleep)
        )
        request = UndeployRequest(
            app_slug="my-app",
            namespace="default",
            manifests=BATCH,
            clear_namespaces=["default"],
        )

        result = orchestrator.undeploy(request)

        assert result.app_slug == "my-app"
        assert result.delete_report.total == 5
        assert result.cleared_namespaces == ["default"]
        assert result.deleted_pvcs == []
        assert set(cluster.deleted) == {"leftover", "db-0"}
        assert fake_sleep.calls == [1.0, 5.0]

    def test_clear_pvcs(self, applier, settings, stub_cluster):
        cluster = stub_cluster(
            {
                PODS: [
                    live_object(
                        "Pod",
                        "db-0",
                        spec={"volumes": [{"name": "d", "persistentVolumeClaim": {"claimName": "data"}}]},
                    )
                ]
            }
        )
        orchestrator = Orchestrator(applier, cluster, settings)
        request = UndeployRequest(
            app_slug="my-app",
            namespace="default",
            clear_pvcs=True,
            restore_label_selector={"matchLabels": {"restore": "r1"}},
        )

        result = orchestrator.undeploy(request)

        assert result.deleted_pvcs == ["data"]
        # the restore selector only applies to restores
        assert cluster.list_selectors == ["kubeorder.io/app-slug=my-app"]

    def test_clear_pvcs_during_restore_uses_selector(self, applier, settings, stub_cluster):
        cluster = stub_cluster({PODS: []})
        orchestrator = Orchestrator(applier, cluster, settings)
        request = UndeployRequest(
            app_slug="my-app",
            namespace="default",
            clear_pvcs=True,
            is_restore=True,
            restore_label_selector={"matchLabels": {"restore": "r1"}},
        )

        orchestrator.undeploy(request)

        assert cluster.list_selectors == ["kubeorder.io/app-slug=my-app,restore=r1"]

    def test_clear_pvcs_requires_cluster(self, applier, settings):
        request = UndeployRequest(app_slug="my-app", namespace="default", clear_pvcs=True)

        with pytest.raises(ConfigurationError):
            Orchestrator(applier, settings=settings).undeploy(request)


class TestFromSettings:
    """Tests for Orchestrator.from_settings."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        previous = structlog.get_config()
        root_level = logging.getLogger().level
        yield
        structlog.configure(**previous)
        logging.getLogger().setLevel(root_level)

    def test_wires_kubectl_and_dynamic_client(self):
        settings = Settings(
            kubectl_path="/opt/kubectl",
            kubeconfig="/tmp/kc",
            context="dev",
            kubectl_timeout_seconds=42,
            reconcile_attempts=7,
        )

        orchestrator = Orchestrator.from_settings(settings)

        assert isinstance(orchestrator.applier, KubectlApplier)
        assert orchestrator.applier.kubectl_cmd == "/opt/kubectl"
        assert orchestrator.applier.timeout == 42
        assert isinstance(orchestrator.cluster, KubernetesCluster)
        assert orchestrator.cluster.context == "dev"
        assert orchestrator.policy.attempts == 7

    def test_applies_log_level(self):
        Orchestrator.from_settings(Settings(log_level="DEBUG"))

        assert logging.getLogger().level == logging.DEBUG
        assert structlog.is_configured()
