"""Cluster status metrics exposed in the Prometheus text format."""

import abc
import math
import threading
from http import HTTPStatus
from typing import Iterable, Tuple

PROM_CONTROLLER_SUBSYSTEM = "controller"
CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class Instrumenter(abc.ABC):
    """Collects the status of managed clusters."""

    @abc.abstractmethod
    def set_cluster_ok(self, namespace: str, name: str) -> None:
        """Mark the cluster as healthy."""

    @abc.abstractmethod
    def set_cluster_error(self, namespace: str, name: str) -> None:
        """Mark the cluster as failing."""

    @abc.abstractmethod
    def delete_cluster(self, namespace: str, name: str) -> None:
        """Forget the cluster."""


class DummyInstrumenter(Instrumenter):
    """An instrumenter that records nothing."""

    def set_cluster_ok(self, namespace: str, name: str) -> None:
        pass

    def set_cluster_error(self, namespace: str, name: str) -> None:
        pass

    def delete_cluster(self, namespace: str, name: str) -> None:
        pass


DUMMY = DummyInstrumenter()


def _fq_name(namespace: str, subsystem: str, name: str) -> str:
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


class _GaugeVec:
    """A gauge partitioned by a fixed set of labels."""

    def __init__(self, name: str, help_text: str, label_names: Iterable[str]) -> None:
        self.name = name
        self.help_text = help_text
        self.label_names = tuple(label_names)
        self._values: dict = {}
        self._lock = threading.Lock()

    def set(self, label_values: Tuple[str, ...], value: float) -> None:
        if len(label_values) != len(self.label_names):
            raise ValueError(f"expected {len(self.label_names)} label values, got {len(label_values)}")
        with self._lock:
            self._values[tuple(label_values)] = float(value)

    def delete(self, label_values: Tuple[str, ...]) -> bool:
        with self._lock:
            return self._values.pop(tuple(label_values), None) is not None

    def render(self) -> str:
        with self._lock:
            items = list(self._values.items())
        if not items:
            return ""
        series = []
        for values, value in items:
            pairs = sorted(zip(self.label_names, values))
            series.append((pairs, value))
        series.sort(key=lambda entry: entry[0])
        lines = [
            f"# HELP {self.name} {_escape_help(self.help_text)}",
            f"# TYPE {self.name} gauge",
        ]
        for pairs, value in series:
            labels = ",".join(f'{key}="{_escape_label(val)}"' for key, val in pairs)
            lines.append(f"{self.name}{{{labels}}} {_format_value(value)}")
        return "\n".join(lines) + "\n"


class PromMetrics(Instrumenter):
    """Keeps the per-cluster status gauge and serves it at ``path``."""

    def __init__(self, path: str, namespace: str) -> None:
        self.path = path
        self._cluster_ok = _GaugeVec(
            _fq_name(namespace, PROM_CONTROLLER_SUBSYSTEM, "cluster_ok"),
            "Number of failover clusters managed by the operator.",
            ("namespace", "name"),
        )

    def set_cluster_ok(self, namespace: str, name: str) -> None:
        self._cluster_ok.set((namespace, name), 1)

    def set_cluster_error(self, namespace: str, name: str) -> None:
        self._cluster_ok.set((namespace, name), 0)

    def delete_cluster(self, namespace: str, name: str) -> None:
        self._cluster_ok.delete((namespace, name))

    def render(self) -> str:
        """Return every metric in the Prometheus text exposition format."""
        return self._cluster_ok.render()

    def handle(self, method: str, path: str) -> Tuple[int, str]:
        """Answer a request; returns the status code and the body."""
        if path != self.path:
            return HTTPStatus.NOT_FOUND.value, "404 page not found\n"
        body = "" if method.upper() == "HEAD" else self.render()
        return HTTPStatus.OK.value, body

    def __call__(self, environ, start_response):
        status, body = self.handle(environ.get("REQUEST_METHOD", "GET"), environ.get("PATH_INFO", "/"))
        data = body.encode("utf-8")
        content_type = CONTENT_TYPE if status == HTTPStatus.OK else "text/plain; charset=utf-8"
        start_response(
            f"{status} {HTTPStatus(status).phrase}",
            [("Content-Type", content_type), ("Content-Length", str(len(data)))],
        )
        return [data]