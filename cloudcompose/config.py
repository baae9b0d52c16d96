"""
Load composer options from a YAML or JSON file.
"""
import json
import os
from typing import Any, Dict

import yaml

from cloudcompose.errors import ConfigurationError
from cloudcompose.models.intrinsic import GetAtt, Ref, Sub


# ------------------------------------------------------------------ CFN YAML loader
# Options files may use CloudFormation short-form tags (!Ref, !GetAtt, !Sub) for
# values that only resolve at deploy time. They load as intrinsic references.

class _OptionsLoader(yaml.SafeLoader):
    pass


def _ref(loader: yaml.SafeLoader, node: yaml.Node) -> Ref:
    return Ref(loader.construct_scalar(node))


def _get_att(loader: yaml.SafeLoader, node: yaml.Node) -> GetAtt:
    # !GetAtt Queue.Arn  or  !GetAtt [Queue, Arn]
    if isinstance(node, yaml.ScalarNode):
        logical_name, _, attribute = loader.construct_scalar(node).partition(".")
    else:
        parts = loader.construct_sequence(node, deep=True)
        if len(parts) != 2:
            raise ConfigurationError(f"!GetAtt expects [LogicalName, Attribute], got {parts!r}")
        logical_name, attribute = parts
    if not logical_name or not attribute:
        raise ConfigurationError(f"Malformed !GetAtt at line {node.start_mark.line + 1}")
    return GetAtt(logical_name, attribute)


def _sub(loader: yaml.SafeLoader, node: yaml.Node) -> Sub:
    if isinstance(node, yaml.ScalarNode):
        return Sub(loader.construct_scalar(node))
    parts = loader.construct_sequence(node, deep=True)
    if len(parts) != 2 or not isinstance(parts[1], dict):
        raise ConfigurationError(f"!Sub expects [template, {{variables}}], got {parts!r}")
    return Sub(parts[0], parts[1])


def _unsupported(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    raise ConfigurationError(
        f"Unsupported tag '!{tag_suffix}' at line {node.start_mark.line + 1}"
    )


_OptionsLoader.add_constructor("!Ref", _ref)
_OptionsLoader.add_constructor("!GetAtt", _get_att)
_OptionsLoader.add_constructor("!Sub", _sub)
_OptionsLoader.add_multi_constructor("!", _unsupported)


def load_options(filepath: str) -> Dict[str, Any]:
    """Read an options mapping; JSON files by extension, everything else as YAML."""
    _, ext = os.path.splitext(filepath.lower())
    try:
        with open(filepath, encoding="utf-8") as fh:
            if ext == ".json":
                data = json.load(fh)
            else:
                data = yaml.load(fh, Loader=_OptionsLoader)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read options file {filepath}: {exc}") from exc
    except (UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse {filepath}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{filepath} must contain a mapping of options")
    return data
