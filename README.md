# cnikit

A pure-Python toolkit for writing Container Network Interface (CNI) plugins
and for working with CNI network configurations and results. It needs
Python 3.10 or later and nothing beyond the standard library.

## What is in it

- `cnikit.spec`: `NetConf`, `NetConfList`, `IPAM`, `DNS` and `Route`, the
  well-known `ErrorCode` values and the `CNIError` exception (with `to_dict`
  and `print`), the abstract `Result` base class, `print_result`, and the CIDR
  helpers `parse_cidr`, `ipnet_to_json` and `ipnet_from_json`. Addresses are
  `ipaddress` interface objects, so `parse_cidr("10.2.3.1/24")` keeps the host
  address as well as the prefix.
- `cnikit.types020`, `cnikit.types040`, `cnikit.types100`: result types for
  spec versions 0.1.0/0.2.0, 0.3.0/0.3.1/0.4.0 and 1.0.0. Each module has
  `Result`, `IPConfig` (and `Interface` from 0.3.0 on), `new_result` and
  `get_result`; `types040` and `types100` also have `new_result_from_result`.
  Importing a module registers its converters and creators.
- `cnikit.registry`: the converter and creator registries (`convert`,
  `create`, `register_converter`, `register_creator`) and `ConversionError`.
- `cnikit.create`: `decode_version`, `create` and `create_from_bytes`.
  Importing it registers all three result families.
- `cnikit.version`: `current`, `PluginInfo`, `plugin_supports`,
  `ConfigDecoder`, `PluginDecoder`, `parse_version`,
  `greater_than_or_equal_to`, `Reconciler`, `ErrorIncompatible`, the
  `LEGACY` and `ALL` version sets, `versions_starting_from`, `new_result`
  and `parse_prev_result`.
- `cnikit.utils`: `validate_container_id`, `validate_network_name` and
  `validate_interface_name`, each raising `CNIError` on a bad value.
- `cnikit.args`: `load_args` fills a dataclass from a `K=V;K2=V2` string.
- `cnikit.skel`: `CmdArgs`, `Dispatcher`, `plugin_main_with_error` and
  `plugin_main`.

## Writing a plugin

```python
from cnikit import skel, spec, types100, version


def cmd_add(args):
    result = types100.Result.from_dict({"cniVersion": "1.0.0"})
    spec.print_result(result, "1.0.0", None)


def cmd_check(args):
    pass


def cmd_del(args):
    pass


if __name__ == "__main__":
    skel.plugin_main(
        cmd_add,
        cmd_check,
        cmd_del,
        version.plugin_supports("0.4.0", "1.0.0"),
        "CNI example plugin v0.1.0",
    )
```

`plugin_main` reads `CNI_COMMAND`, `CNI_CONTAINERID`, `CNI_NETNS`,
`CNI_IFNAME`, `CNI_ARGS` and `CNI_PATH` from the environment and the network
configuration from stdin. It checks that the configuration has a valid
`name`, that the container ID and interface name are valid, and that the
configuration's `cniVersion` (0.1.0 when absent) is one the plugin supports,
then calls the callback for ADD, CHECK or DEL with a `CmdArgs`. CHECK also
requires a configuration version of 0.4.0 or later.

- If anything fails, the error is printed to stdout as indented JSON
  (`{"code": ..., "msg": ..., "details": ...}`) and the process exits with
  status 1. `plugin_main_with_error` raises the `CNIError` instead.
- A callback signals failure by raising. A `CNIError` is passed on as it is;
  any other exception becomes a `CNIError` with code `ErrorCode.INTERNAL`.
- For `VERSION`, the plugin writes one line of JSON with `cniVersion` and
  `supportedVersions` to stdout and does not read stdin.
- When `CNI_COMMAND` is unset and an "about" string was given, that string
  and the supported versions are written to stderr and nothing fails.

To drive a plugin from other sources (for example in tests), build a
`Dispatcher` with your own `getenv`, `stdin`, `stdout` and `stderr` and call
its `plugin_main`.

## Converting results between spec versions

```python
from cnikit import create

raw = b'''{
    "cniVersion": "1.0.0",
    "ips": [{"address": "10.1.2.3/24", "gateway": "10.1.2.1"}],
    "dns": {}
}'''

result = create.create_from_bytes(raw)
legacy = result.get_as_version("0.4.0")   # adds "version": "4" to each IP
oldest = result.get_as_version("0.1.0")   # ip4 / ip6 layout
print(oldest.to_json())
```

An empty target version means 0.1.0. Converting to 0.2.0 or earlier keeps
only the first address of each family and needs at least one address;
otherwise `ConversionError` is raised.

## Version helpers

```python
from cnikit import version

version.parse_version("0.4.0")                          # (0, 4, 0)
version.greater_than_or_equal_to("1.0.0", "0.4.0")      # True
version.versions_starting_from("0.3.1").supported_versions()
# ['0.3.1', '0.4.0', '1.0.0']

info = version.plugin_supports("0.3.1", "0.4.0")
version.Reconciler().check("1.0.0", info)   # raises ErrorIncompatible
```

`parse_prev_result(conf)` turns a `NetConf`'s `raw_prev_result` into a result
object of the configuration's version in `prev_result`.

## Parsing CNI_ARGS

```python
from cnikit.args import CommonArgs, load_args

container = CommonArgs()
load_args("IgnoreUnknown=true;K8S_POD_NAME=web", container)
```

A key fills the dataclass field whose `arg` metadata names it, or else the
field of that name; the field's type must provide a `from_text` class method,
as `UnmarshallableBool` and `UnmarshallableString` do. Unknown keys raise
`ArgsError` unless `IgnoreUnknown` is set to `1` or `true` (any case).

## What it does not do

cnikit is the plugin side only. It does not find or run plugins on behalf of
a container runtime, does not load configuration files from disk, does not
enter network namespaces or configure interfaces, and ships no ready-made
plugin or command-line program.

## Tests

The tests are written for pytest, which the `test` extra installs.