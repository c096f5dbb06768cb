"""Skeleton for CNI plugins: reads the environment and stdin and dispatches commands."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from cnikit import create, spec
from cnikit.spec import CNIError, ErrorCode
from cnikit.utils import (
    validate_container_id,
    validate_interface_name,
    validate_network_name,
)
from cnikit.version import (
    ConfigDecoder,
    ErrorIncompatible,
    PluginInfo,
    Reconciler,
    greater_than_or_equal_to,
)

_log = logging.getLogger(__name__)

_ALL_COMMANDS = frozenset({"ADD", "CHECK", "DEL"})

# Each variable with the commands that require it.
_ENV_VARS = (
    ("CNI_COMMAND", _ALL_COMMANDS),
    ("CNI_CONTAINERID", _ALL_COMMANDS),
    ("CNI_NETNS", frozenset({"ADD", "CHECK"})),
    ("CNI_IFNAME", _ALL_COMMANDS),
    ("CNI_ARGS", frozenset()),
    ("CNI_PATH", _ALL_COMMANDS),
)


@dataclass
class CmdArgs:
    """The arguments a plugin receives through its environment and stdin."""

    container_id: str = ""
    netns: str = ""
    if_name: str = ""
    args: str = ""
    path: str = ""
    stdin_data: bytes = b""


Callback = Callable[[CmdArgs], Any]


@dataclass
class Dispatcher:
    """Reads plugin input from the given sources and calls the matching callback."""

    getenv: Callable[[str], Optional[str]] = os.environ.get
    stdin: Any = field(default_factory=lambda: sys.stdin)
    stdout: Any = field(default_factory=lambda: sys.stdout)
    stderr: Any = field(default_factory=lambda: sys.stderr)
    conf_version_decoder: ConfigDecoder = field(default_factory=ConfigDecoder)
    version_reconciler: Reconciler = field(default_factory=Reconciler)

    def _env(self, name: str) -> str:
        return self.getenv(name) or ""

    def _read_stdin(self) -> bytes:
        source = getattr(self.stdin, "buffer", self.stdin)
        try:
            data = source.read()
        except OSError as err:
            raise CNIError(
                ErrorCode.IO_FAILURE, f"error reading from stdin: {err}"
            ) from err
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)

    def _cmd_args_from_env(self) -> tuple[str, CmdArgs]:
        values = {name: self._env(name) for name, _ in _ENV_VARS}
        cmd = values["CNI_COMMAND"]
        missing = [
            name
            for name, required_for in _ENV_VARS
            if not values[name] and (cmd in required_for or name == "CNI_COMMAND")
        ]
        if missing:
            raise CNIError(
                ErrorCode.INVALID_ENVIRONMENT_VARIABLES,
                f"required env variables [{','.join(missing)}] missing",
            )

        stdin_data = b"" if cmd == "VERSION" else self._read_stdin()
        return cmd, CmdArgs(
            container_id=values["CNI_CONTAINERID"],
            netns=values["CNI_NETNS"],
            if_name=values["CNI_IFNAME"],
            args=values["CNI_ARGS"],
            path=values["CNI_PATH"],
            stdin_data=stdin_data,
        )

    def _config_version(self, cmd_args: CmdArgs) -> str:
        try:
            return self.conf_version_decoder.decode(cmd_args.stdin_data)
        except ValueError as err:
            raise CNIError(ErrorCode.DECODING_FAILURE, str(err)) from err

    def _check_version_and_call(
        self, cmd_args: CmdArgs, version_info: PluginInfo, callback: Callback
    ) -> None:
        config_version = self._config_version(cmd_args)
        try:
            self.version_reconciler.check(config_version, version_info)
        except ErrorIncompatible as err:
            raise CNIError(
                ErrorCode.INCOMPATIBLE_CNI_VERSION,
                "incompatible CNI versions",
                err.details(),
            ) from err
        try:
            callback(cmd_args)
        except CNIError:
            raise
        except Exception as err:
            raise CNIError(ErrorCode.INTERNAL, str(err)) from err

    def _check(
        self, cmd_args: CmdArgs, version_info: PluginInfo, callback: Callback
    ) -> None:
        config_version = self._config_version(cmd_args)
        try:
            allowed = greater_than_or_equal_to(config_version, "0.4.0")
        except ValueError as err:
            raise CNIError(ErrorCode.DECODING_FAILURE, str(err)) from err
        if not allowed:
            raise CNIError(
                ErrorCode.INCOMPATIBLE_CNI_VERSION, "config version does not allow CHECK"
            )
        for plugin_version in version_info.supported_versions():
            try:
                usable = greater_than_or_equal_to(plugin_version, config_version)
            except ValueError as err:
                raise CNIError(ErrorCode.DECODING_FAILURE, str(err)) from err
            if usable:
                self._check_version_and_call(cmd_args, version_info, callback)
                return
        raise CNIError(
            ErrorCode.INCOMPATIBLE_CNI_VERSION, "plugin version does not allow CHECK"
        )

    def plugin_main(
        self,
        cmd_add: Callback,
        cmd_check: Callback,
        cmd_del: Callback,
        version_info: PluginInfo,
        about: str,
    ) -> None:
        """Run the command named by CNI_COMMAND; raise CNIError on failure."""
        try:
            cmd, cmd_args = self._cmd_args_from_env()
        except CNIError as err:
            if (
                err.code == ErrorCode.INVALID_ENVIRONMENT_VARIABLES
                and not self._env("CNI_COMMAND")
                and about
            ):
                supported = ", ".join(version_info.supported_versions())
                print(about, file=self.stderr)
                print(f"CNI protocol versions supported: {supported}", file=self.stderr)
                return
            raise

        if cmd != "VERSION":
            _validate_config(cmd_args.stdin_data)
            validate_container_id(cmd_args.container_id)
            validate_interface_name(cmd_args.if_name)

        if cmd == "ADD":
            self._check_version_and_call(cmd_args, version_info, cmd_add)
        elif cmd == "CHECK":
            self._check(cmd_args, version_info, cmd_check)
        elif cmd == "DEL":
            self._check_version_and_call(cmd_args, version_info, cmd_del)
        elif cmd == "VERSION":
            try:
                version_info.encode(self.stdout)
            except OSError as err:
                raise CNIError(ErrorCode.IO_FAILURE, str(err)) from err
        else:
            raise CNIError(
                ErrorCode.INVALID_ENVIRONMENT_VARIABLES, f"unknown CNI_COMMAND: {cmd}"
            )


def _validate_config(data: bytes) -> None:
    prefix = "error unmarshall network config"
    try:
        doc = create._load_json(data)
    except ValueError as err:
        raise CNIError(ErrorCode.DECODING_FAILURE, f"{prefix}: {err}") from err
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise CNIError(
            ErrorCode.DECODING_FAILURE,
            f"{prefix}: cannot unmarshal {spec._json_kind(doc)} into an object",
        )
    name = doc.get("name")
    if name is None:
        name = ""
    if not isinstance(name, str):
        raise CNIError(
            ErrorCode.DECODING_FAILURE,
            f"{prefix}: cannot unmarshal {spec._json_kind(name)} into field name",
        )
    if not name:
        raise CNIError(ErrorCode.INVALID_NETWORK_CONFIG, "missing network name")
    validate_network_name(name)


def plugin_main_with_error(
    cmd_add: Callback,
    cmd_check: Callback,
    cmd_del: Callback,
    version_info: PluginInfo,
    about: str,
) -> None:
    """Run a plugin against the process environment; raise CNIError on failure."""
    Dispatcher(
        getenv=os.environ.get,
        stdin=sys.stdin,
        stdout=sys.stdout,
        stderr=sys.stderr,
    ).plugin_main(cmd_add, cmd_check, cmd_del, version_info, about)


def plugin_main(
    cmd_add: Callback,
    cmd_check: Callback,
    cmd_del: Callback,
    version_info: PluginInfo,
    about: str,
) -> None:
    """Run a plugin; on failure print the error as JSON to stdout and exit with 1."""
    try:
        plugin_main_with_error(cmd_add, cmd_check, cmd_del, version_info, about)
    except CNIError as err:
        try:
            err.print(sys.stdout)
            sys.stdout.flush()
        except OSError as io_err:
            _log.error("Error writing error JSON to stdout: %s", io_err)
        sys.exit(1)