"""Loading, merging and validating ratchet configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass

import yaml

_STRING_FIELDS = ("metric", "pre", "post", "lt", "le", "eq", "ge", "gt")
_COMPARISONS = ("lt", "le", "eq", "ge", "gt")
_ALL_FIELDS = (*_STRING_FIELDS, "verbose")

_NULL_TAG = "tag:yaml.org,2002:null"
_BOOL_TAG = "tag:yaml.org,2002:bool"
_TRUE_WORDS = {"true", "yes", "on"}
_FALSE_WORDS = {"false", "no", "off"}

DEFAULT_CONFIG_FILE = ".ratchet"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""


@dataclass
class Config:
    """Settings for a ratchet run."""

    metric: str = ""
    pre: str = ""
    post: str = ""
    lt: str = ""
    le: str = ""
    eq: str = ""
    ge: str = ""
    gt: str = ""
    verbose: bool = False

    def validate(self) -> None:
        """Raise ConfigError unless a metric and at most one comparison are set."""
        if not self.metric:
            raise ConfigError("a metric command is required")
        if sum(1 for name in _COMPARISONS if getattr(self, name)) > 1:
            raise ConfigError("only one comparison operator can be specified")

    def merge_with_flags(self, metric, pre, post, lt, le, equal_to, ge, gt, verbose) -> None:
        """Overlay command-line values; non-empty flags take precedence."""
        if metric:
            self.metric = metric
        if pre:
            self.pre = pre
        if post:
            self.post = post

        cli = {"lt": lt, "le": le, "eq": equal_to, "ge": ge, "gt": gt}
        if any(cli.values()):
            # A comparison on the command line replaces whatever the config held.
            for name, value in cli.items():
                setattr(self, name, value or "")

        if verbose:
            self.verbose = True

    def comparison_info(self) -> tuple[str, str]:
        """Return (comparison name, base reference), or ("", "") when none is set."""
        for name in _COMPARISONS:
            value = getattr(self, name)
            if value:
                return name, value
        return "", ""


def _extension(path: str) -> str:
    name = os.path.basename(path)
    dot = name.rfind(".")
    return name[dot:].lower() if dot >= 0 else ""


def load_from_file(path) -> Config:
    """Load configuration from a YAML or JSON file, chosen by extension."""
    path = os.fspath(path)
    try:
        with open(path, encoding="utf-8") as handle:
            data = handle.read()
    except (OSError, UnicodeDecodeError):
        raise ConfigError(f"failed to read config file {path}") from None

    ext = _extension(path)
    try:
        if ext == ".json":
            return load_from_json_string(data)
        if ext in (".yaml", ".yml"):
            return load_from_string(data)
    except ConfigError:
        raise ConfigError(f"failed to parse config file {path}") from None

    try:
        return load_from_string(data)
    except ConfigError:
        pass
    try:
        return load_from_json_string(data)
    except ConfigError:
        raise ConfigError(
            f"failed to parse config file {path} as either YAML or JSON"
        ) from None


def _yaml_config(yaml_str: str) -> Config:
    documents = yaml.compose_all(yaml_str, Loader=yaml.SafeLoader)
    root = next(documents, None)
    config = Config()
    if root is None:
        return config
    if isinstance(root, yaml.ScalarNode) and root.tag == _NULL_TAG:
        return config
    if not isinstance(root, yaml.MappingNode):
        raise ValueError("top level is not a mapping")

    seen: set[str] = set()
    for key_node, value_node in root.value:
        if not isinstance(key_node, yaml.ScalarNode):
            continue
        name = key_node.value
        if name in seen:
            raise ValueError(f"mapping key {name!r} already defined")
        seen.add(name)
        if name not in _ALL_FIELDS:
            continue
        if isinstance(value_node, yaml.ScalarNode) and value_node.tag == _NULL_TAG:
            setattr(config, name, Config.__dataclass_fields__[name].default)
            continue
        if not isinstance(value_node, yaml.ScalarNode):
            raise ValueError(f"field {name!r} must be a scalar")
        if name == "verbose":
            word = value_node.value.lower()
            if value_node.tag == _BOOL_TAG and word in _TRUE_WORDS:
                config.verbose = True
            elif value_node.tag == _BOOL_TAG and word in _FALSE_WORDS:
                config.verbose = False
            else:
                raise ValueError("field 'verbose' must be a boolean")
        else:
            setattr(config, name, value_node.value)
    return config


def load_from_string(yaml_str: str) -> Config:
    """Load configuration from a YAML string."""
    try:
        return _yaml_config(yaml_str)
    except (yaml.YAMLError, ValueError):
        raise ConfigError(f"invalid config was supplied:\n{yaml_str}") from None


class _Pairs(list):
    """Key/value pairs of a JSON object, in document order."""


def _json_config(json_str: str) -> Config:
    root = json.loads(json_str, object_pairs_hook=_Pairs)
    config = Config()
    if root is None:
        return config
    if not isinstance(root, _Pairs):
        raise ValueError("top level is not an object")

    for key, value in root:
        name = key if key in _ALL_FIELDS else key.lower()
        if name not in _ALL_FIELDS or value is None:
            continue
        if name == "verbose":
            if not isinstance(value, bool):
                raise ValueError("field 'verbose' must be a boolean")
        elif not isinstance(value, str):
            raise ValueError(f"field {name!r} must be a string")
        setattr(config, name, value)
    return config


def load_from_json_string(json_str: str) -> Config:
    """Load configuration from a JSON string."""
    try:
        return _json_config(json_str)
    except ValueError:
        raise ConfigError(f"invalid JSON config was supplied:\n{json_str}") from None


def load_from_config_string(config_str: str) -> Config:
    """Load configuration from a string, detecting JSON or YAML."""
    trimmed = config_str.strip()
    if trimmed.startswith("{") and trimmed.endswith("}"):
        return load_from_json_string(config_str)

    try:
        return load_from_string(config_str)
    except ConfigError:
        pass
    try:
        return load_from_json_string(config_str)
    except ConfigError:
        raise ConfigError(
            f"invalid config string (tried both YAML and JSON):\n{config_str}"
        ) from None


def load_default() -> Config:
    """Load ./.ratchet if it exists, otherwise return an empty configuration."""
    if os.path.exists(DEFAULT_CONFIG_FILE):
        return load_from_file(DEFAULT_CONFIG_FILE)
    return Config()