"""Handler that keeps the resources of a RedisFailover in place and its servers healthy.

A redis failover is a group of redis servers and a group of sentinels managing them.
The handler works through three collaborators: a client that creates the cluster
resources, a checker that inspects the running redis and sentinel processes, and a
healer that repairs them. A check reports a failed expectation by raising.
"""

import datetime
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .api import RF_KIND, OwnerReference, RedisFailover, version_kind

OPERATOR_NAME = "redis-operator"
RF_LABEL_MANAGED_BY_KEY = "app.kubernetes.io/managed-by"
RF_LABEL_NAME_KEY = "redisfailovers.databases.spotahome.com/name"

DEFAULT_LABELS = {RF_LABEL_MANAGED_BY_KEY: OPERATOR_NAME}

TIME_TO_PREPARE = datetime.timedelta(minutes=2)


@dataclass
class Config:
    """Configuration of the operator."""

    listen_address: str = ""
    metrics_path: str = ""


class OperatorError(RuntimeError):
    """The failover is in a state the operator cannot handle."""


def _fails(check: Callable[..., Any], *args: Any) -> bool:
    """Run a check and tell whether it reported a problem."""
    try:
        check(*args)
    except Exception:
        return True
    return False


class RedisFailoverHandler:
    """Creates the resources a RedisFailover needs and heals its redis and sentinels."""

    def __init__(self, config, rf_service, rf_checker, rf_healer, k8s_service, metrics_client, logger) -> None:
        self.config = config
        self._service = rf_service
        self._checker = rf_checker
        self._healer = rf_healer
        self._k8s_service = k8s_service
        self._metrics = metrics_client
        self._logger = logger

    # Lifecycle -------------------------------------------------------------

    def add(self, obj: Any) -> None:
        """Bring the received failover to its expected state."""
        if not isinstance(obj, RedisFailover):
            raise OperatorError("can't handle the received object: not a redisfailover")
        rf = obj
        namespace, name = rf.metadata.namespace, rf.metadata.name
        try:
            rf.validate()
            owner_refs = self.create_owner_references(rf)
            labels = self.get_labels(rf)
            self.ensure(rf, labels, owner_refs)
            self.check_and_heal(rf)
        except Exception:
            self._metrics.set_cluster_error(namespace, name)
            raise
        self._metrics.set_cluster_ok(namespace, name)

    def delete(self, name: str) -> None:
        """Forget a deleted failover; its objects are collected through owner references."""
        parts = name.split("/")
        if len(parts) >= 2:
            self._metrics.delete_cluster(parts[0], parts[1])
        self._logger.debug("ignoring, kubernetes GCs all using the objects OwnerReference metadata")

    def get_labels(self, rf: RedisFailover) -> dict:
        """Merge the operator's labels with the failover's, filtered by its whitelist."""
        dynamic = {RF_LABEL_NAME_KEY: rf.metadata.name}
        whitelist = rf.spec.label_whitelist
        custom: Mapping[str, str]
        if whitelist:
            filtered = {}
            for pattern in whitelist:
                try:
                    compiled = re.compile(pattern)
                except re.error:
                    self._logger.error("Unable to compile label whitelist regex '%s', ignoring it.", pattern)
                    continue
                filtered.update(
                    (key, value) for key, value in rf.metadata.labels.items() if compiled.search(key)
                )
            custom = filtered
        else:
            custom = rf.metadata.labels
        return {**DEFAULT_LABELS, **dynamic, **custom}

    def create_owner_references(self, rf: RedisFailover) -> list:
        """Owner references that make the failover the controller of derived objects."""
        gvk = version_kind(RF_KIND)
        return [
            OwnerReference(
                api_version=gvk.api_version,
                kind=gvk.kind,
                name=rf.metadata.name,
                uid=rf.metadata.uid,
                controller=True,
                block_owner_deletion=True,
            )
        ]

    # Resources -------------------------------------------------------------

    def ensure(self, rf: RedisFailover, labels: Mapping[str, str], owner_refs: list) -> None:
        """Make sure every resource of the failover exists."""
        service = self._service
        if rf.spec.redis.exporter.enabled:
            service.ensure_redis_service(rf, labels, owner_refs)
        else:
            service.ensure_not_present_redis_service(rf)

        sentinels_allowed = rf.sentinels_allowed()
        if sentinels_allowed:
            service.ensure_sentinel_service(rf, labels, owner_refs)
            service.ensure_sentinel_config_map(rf, labels, owner_refs)

        service.ensure_redis_shutdown_config_map(rf, labels, owner_refs)
        service.ensure_redis_readiness_config_map(rf, labels, owner_refs)
        service.ensure_redis_config_map(rf, labels, owner_refs)
        service.ensure_redis_statefulset(rf, labels, owner_refs)

        if sentinels_allowed:
            service.ensure_sentinel_deployment(rf, labels, owner_refs)

    # Health ----------------------------------------------------------------

    def update_redises_pods(self, rf: RedisFailover) -> None:
        """Replace, one per round, the pods whose revision is not the statefulset's."""
        checker = self._checker
        redises = checker.get_redises_ips(rf)

        master_ip = ""
        if not rf.bootstrapping():
            try:
                master_ip = checker.get_master_ip(rf)
            except Exception:
                master_ip = ""

        # No updates while replicas are syncing or not yet connected.
        for ip in redises:
            if ip != master_ip and not checker.check_redis_slaves_ready(ip, rf):
                return

        update_revision = checker.get_statefulset_update_revision(rf)

        for pod in checker.get_redises_slaves_pods(rf):
            if checker.get_redis_revision_hash(pod, rf) != update_revision:
                # Wait for the next round to see whether the new pod is synced.
                self._delete_pod(pod, rf)
                return

        if not rf.bootstrapping():
            master = checker.get_redises_master_pod(rf)
            try:
                master_revision = checker.get_redis_revision_hash(master, rf)
            except Exception:
                master_revision = ""
            if master_revision != update_revision:
                self._delete_pod(master, rf)

    def _delete_pod(self, pod: str, rf: RedisFailover) -> None:
        try:
            self._healer.delete_pod(pod, rf)
        except Exception as exc:
            self._logger.debug("could not delete pod %s: %s", pod, exc)

    def check_and_heal(self, rf: RedisFailover) -> None:
        """Verify the failover is healthy and repair what is not."""
        if rf.bootstrapping():
            self._check_and_heal_bootstrap_mode(rf)
            return

        checker, healer = self._checker, self._healer
        if _fails(checker.check_redis_number, rf):
            self._logger.debug("Number of redis mismatch, this could be for a change on the statefulset")
            return
        if _fails(checker.check_sentinel_number, rf):
            self._logger.debug("Number of sentinel mismatch, this could be for a change on the deployment")
            return

        n_masters = checker.get_number_masters(rf)
        if n_masters == 0:
            redises = checker.get_redises_ips(rf)
            if len(redises) == 1:
                healer.make_master(redises[0], rf)
            else:
                min_time = checker.get_minimum_redis_pod_time(rf)
                if min_time > TIME_TO_PREPARE:
                    self._logger.debug(
                        "time %d more than expected. Not even one master, fixing...",
                        round(min_time.total_seconds()),
                    )
                    healer.set_oldest_as_master(rf)
                else:
                    self._logger.debug("No master found, wait until failover")
                    return
        elif n_masters != 1:
            raise OperatorError("More than one master, fix manually")

        master = checker.get_master_ip(rf)
        if _fails(checker.check_all_slaves_from_master, master, rf):
            self._logger.debug("Not all slaves have the same master")
            healer.set_master_on_all(master, rf)

        self._apply_redis_custom_config(rf)
        self.update_redises_pods(rf)

        sentinels = checker.get_sentinels_ips(rf)
        for sentinel in sentinels:
            if _fails(checker.check_sentinel_monitor, sentinel, master):
                self._logger.debug("Sentinel is not monitoring the correct master")
                healer.new_sentinel_monitor(sentinel, master, rf)
        self._check_and_heal_sentinels(rf, sentinels)

    def _check_and_heal_bootstrap_mode(self, rf: RedisFailover) -> None:
        checker, healer = self._checker, self._healer
        if _fails(checker.check_redis_number, rf):
            self._logger.debug("Number of redis mismatch, this could be for a change on the statefulset")
            return

        self.update_redises_pods(rf)
        self._apply_redis_custom_config(rf)

        node = rf.spec.bootstrap_node
        healer.set_external_master_on_all(node.host, node.port, rf)

        if not rf.sentinels_allowed():
            return
        if _fails(checker.check_sentinel_number, rf):
            self._logger.debug("Number of sentinel mismatch, this could be for a change on the deployment")
            return

        sentinels = checker.get_sentinels_ips(rf)
        for sentinel in sentinels:
            if _fails(checker.check_sentinel_monitor, sentinel, node.host, node.port):
                self._logger.debug("Sentinel is not monitoring the correct master")
                healer.new_sentinel_monitor_with_port(sentinel, node.host, node.port, rf)
        self._check_and_heal_sentinels(rf, sentinels)

    def _apply_redis_custom_config(self, rf: RedisFailover) -> None:
        for ip in self._checker.get_redises_ips(rf):
            self._healer.set_redis_custom_config(ip, rf)

    def _check_and_heal_sentinels(self, rf: RedisFailover, sentinels: list) -> None:
        checker, healer = self._checker, self._healer
        for sentinel in sentinels:
            if _fails(checker.check_sentinel_number_in_memory, sentinel, rf):
                self._logger.debug("Sentinel has more sentinel in memory than spected")
                healer.restore_sentinel(sentinel)
        for sentinel in sentinels:
            if _fails(checker.check_sentinel_slaves_number_in_memory, sentinel, rf):
                self._logger.debug("Sentinel has more slaves in memory than spected")
                healer.restore_sentinel(sentinel)
        for sentinel in sentinels:
            healer.set_sentinel_custom_config(sentinel, rf)