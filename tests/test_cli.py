import os

import pytest

from rfoperator.cli import CMDFlags, parse_flags
from rfoperator.operator import Config


def test_defaults():
    flags = parse_flags([])
    assert flags.listen_addr == ":9710"
    assert flags.metrics_path == "/metrics"
    assert flags.debug is False
    assert flags.development is False
    assert flags.kube_config == os.path.join(os.path.expanduser("~"), ".kube", "config")


@pytest.mark.parametrize("argv", [["-debug"], ["--debug"], ["-debug=true"], ["-debug=1"]])
def test_debug_flag_forms(argv):
    assert parse_flags(argv).debug is True


def test_explicit_false_bool():
    assert parse_flags(["-development=false"]).development is False


def test_values_round_trip():
    flags = parse_flags(
        ["-kubeconfig", "/tmp/kc", "-development", "-listen-address", ":8080", "-metrics-path", "/m"]
    )
    assert flags == CMDFlags(
        kube_config="/tmp/kc", development=True, debug=False, listen_addr=":8080", metrics_path="/m"
    )


def test_to_operator_config():
    flags = parse_flags(["-listen-address", ":8080", "-metrics-path", "/m"])
    assert flags.to_operator_config() == Config(listen_address=":8080", metrics_path="/m")


def test_unknown_flag_exits():
    with pytest.raises(SystemExit) as info:
        parse_flags(["-nope"])
    assert info.value.code == 2


def test_bad_bool_value_exits():
    with pytest.raises(SystemExit) as info:
        parse_flags(["-debug=maybe"])
    assert info.value.code == 2