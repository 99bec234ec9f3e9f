import io
from wsgiref.util import setup_testing_defaults

import pytest

from rfoperator.metrics import DUMMY, Instrumenter, PromMetrics

PATH = "/awesome-metrics"


def _ok(ns, name):
    return lambda pm: pm.set_cluster_ok(ns, name)


CASES = [
    (
        "Setting OK should give an OK",
        [lambda pm: pm.set_cluster_ok("testns", "test")],
        ['my_metrics_controller_cluster_ok{name="test",namespace="testns"} 1'],
    ),
    (
        "Setting Error should give an Error",
        [lambda pm: pm.set_cluster_error("testns", "test")],
        ['my_metrics_controller_cluster_ok{name="test",namespace="testns"} 0'],
    ),
    (
        "Setting Error after ok should give an Error",
        [lambda pm: pm.set_cluster_ok("testns", "test"), lambda pm: pm.set_cluster_error("testns", "test")],
        ['my_metrics_controller_cluster_ok{name="test",namespace="testns"} 0'],
    ),
    (
        "Setting OK after Error should give an OK",
        [lambda pm: pm.set_cluster_error("testns", "test"), lambda pm: pm.set_cluster_ok("testns", "test")],
        ['my_metrics_controller_cluster_ok{name="test",namespace="testns"} 1'],
    ),
    (
        "Multiple clusters should appear",
        [_ok("testns", "test"), _ok("testns", "test2")],
        [
            'my_metrics_controller_cluster_ok{name="test",namespace="testns"} 1',
            'my_metrics_controller_cluster_ok{name="test2",namespace="testns"} 1',
        ],
    ),
    (
        "Same name on different namespaces should appear",
        [_ok("testns1", "test"), _ok("testns2", "test")],
        [
            'my_metrics_controller_cluster_ok{name="test",namespace="testns1"} 1',
            'my_metrics_controller_cluster_ok{name="test",namespace="testns2"} 1',
        ],
    ),
    (
        "Deleting a cluster should remove it",
        [_ok("testns1", "test"), lambda pm: pm.delete_cluster("testns1", "test")],
        [],
    ),
    (
        "Deleting a cluster should remove only the desired one",
        [_ok("testns1", "test"), _ok("testns2", "test"), lambda pm: pm.delete_cluster("testns1", "test")],
        ['my_metrics_controller_cluster_ok{name="test",namespace="testns2"} 1'],
    ),
]


@pytest.mark.parametrize("name,actions,expected", CASES, ids=[c[0] for c in CASES])
def test_prometheus_metrics(name, actions, expected):
    pm = PromMetrics(PATH, "my_metrics")
    for action in actions:
        action(pm)
    status, body = pm.handle("GET", PATH)
    assert status == 200
    for metric in expected:
        assert metric in body


def test_deleted_cluster_is_absent():
    pm = PromMetrics(PATH, "my_metrics")
    pm.set_cluster_ok("testns1", "test")
    pm.set_cluster_ok("testns2", "test")
    pm.delete_cluster("testns1", "test")
    body = pm.render()
    assert 'namespace="testns1"' not in body
    assert body.count("my_metrics_controller_cluster_ok{") == 1


def test_render_includes_help_and_type():
    pm = PromMetrics(PATH, "my_metrics")
    pm.set_cluster_ok("testns", "test")
    body = pm.render()
    assert "# TYPE my_metrics_controller_cluster_ok gauge" in body
    assert "Number of failover clusters managed by the operator." in body


def test_empty_registry_renders_nothing():
    assert PromMetrics(PATH, "my_metrics").render() == ""


def test_unknown_path_is_not_found():
    pm = PromMetrics(PATH, "my_metrics")
    status, _ = pm.handle("GET", "/other")
    assert status == 404


def test_wsgi_application_serves_metrics():
    pm = PromMetrics(PATH, "my_metrics")
    pm.set_cluster_ok("testns", "test")
    environ = {"PATH_INFO": PATH, "REQUEST_METHOD": "GET"}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(pm(environ, start_response)).decode()
    assert captured["status"] == "200 OK"
    assert captured["headers"]["Content-Length"] == str(len(body.encode()))
    assert 'my_metrics_controller_cluster_ok{name="test",namespace="testns"} 1' in body


def test_instrumenter_is_abstract_and_dummy_records_nothing():
    with pytest.raises(TypeError):
        Instrumenter()
    assert DUMMY.set_cluster_ok("testns", "test") is None
    assert DUMMY.delete_cluster("testns", "test") is None