"""Command-line flags of the operator."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional, Sequence

from .operator import Config

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f'invalid boolean value "{text}"')


def _default_kubeconfig() -> str:
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


@dataclass
class CMDFlags:
    """Flags given to the operator command."""

    kube_config: str
    development: bool = False
    debug: bool = False
    listen_addr: str = ":9710"
    metrics_path: str = "/metrics"

    def to_operator_config(self) -> Config:
        """The operator configuration these flags describe."""
        return Config(listen_address=self.listen_addr, metrics_path=self.metrics_path)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="redis-operator", allow_abbrev=False)
    parser.add_argument(
        "-kubeconfig", "--kubeconfig", dest="kube_config", default=_default_kubeconfig(),
        help="kubernetes configuration path, only used when development mode enabled",
    )
    parser.add_argument(
        "-development", "--development", nargs="?", const=True, default=False, type=_parse_bool,
        help="development flag will allow to run the operator outside a kubernetes cluster",
    )
    parser.add_argument(
        "-debug", "--debug", nargs="?", const=True, default=False, type=_parse_bool, help="enable debug mode"
    )
    parser.add_argument(
        "-listen-address", "--listen-address", dest="listen_addr", default=":9710",
        help="Address to listen on for metrics.",
    )
    parser.add_argument(
        "-metrics-path", "--metrics-path", dest="metrics_path", default="/metrics", help="Path to serve the metrics."
    )
    return parser


def parse_flags(argv: Optional[Sequence[str]] = None) -> CMDFlags:
    """Parse the command line; exits with status 2 on a bad flag."""
    namespace = _parser().parse_args(argv)
    return CMDFlags(
        kube_config=namespace.kube_config,
        development=namespace.development,
        debug=namespace.debug,
        listen_addr=namespace.listen_addr,
        metrics_path=namespace.metrics_path,
    )