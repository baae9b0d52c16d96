"""
Merge resource graphs into a CloudFormation template and serialize it.
"""
import json
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from cloudcompose.errors import ConfigurationError
from cloudcompose.models.intrinsic import GetAtt, Ref, Sub
from cloudcompose.models.resource import Resource, ResourceGraph

TEMPLATE_FORMAT_VERSION = "2010-09-09"

_SECTIONS = ("Parameters", "Mappings", "Conditions", "Resources", "Outputs")


def render(value: Any) -> Any:
    """
    Convert composer output into plain CloudFormation values.

    Intrinsic references become their Fn:: / Ref dicts, resources and graphs
    become dicts, and dict entries whose value is None are dropped.
    """
    if isinstance(value, (Ref, GetAtt, Sub, Resource, ResourceGraph)):
        return render(value.to_dict())
    if isinstance(value, Mapping):
        return {k: render(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [render(v) for v in value]
    return value


def merge(*fragments: Union[ResourceGraph, Mapping[str, Any]], description: Optional[str] = None) -> dict:
    """
    Combine fragments into one template.

    A fragment is either a ResourceGraph or a template-shaped mapping with any
    of the Parameters/Mappings/Conditions/Resources/Outputs sections. The same
    key appearing twice within a section is an error.
    """
    template: Dict[str, Any] = {"AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION}
    if description:
        template["Description"] = description

    sections: Dict[str, Dict[str, Any]] = {s: {} for s in _SECTIONS}
    for fragment in fragments:
        if isinstance(fragment, ResourceGraph):
            fragment = {"Resources": fragment}
        for section in _SECTIONS:
            for key, val in (fragment.get(section) or {}).items():
                if key in sections[section]:
                    raise ConfigurationError(f"{section} name '{key}' is used more than once")
                sections[section][key] = render(val)

    for section in _SECTIONS:
        if sections[section]:
            template[section] = sections[section]
    return template


def dump(template: Mapping[str, Any], fmt: str = "json") -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(template, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(template, default_flow_style=False, sort_keys=False)
    raise ConfigurationError(f"Unsupported output format '{fmt}'")
