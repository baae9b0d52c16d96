"""
CloudFormation intrinsic references.

Composers build these as opaque placeholders; nothing here resolves them.
template.render() turns them into their CloudFormation JSON form.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Ref:
    logical_name: str

    def to_dict(self) -> dict:
        return {"Ref": self.logical_name}


@dataclass(frozen=True)
class GetAtt:
    logical_name: str
    attribute: str

    def to_dict(self) -> dict:
        return {"Fn::GetAtt": [self.logical_name, self.attribute]}


@dataclass(frozen=True, eq=False)
class Sub:
    template: str
    variables: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        if self.variables is None:
            return {"Fn::Sub": self.template}
        return {"Fn::Sub": [self.template, dict(self.variables)]}

    # dict variables are unhashable, so compare by rendered shape instead
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sub):
            return NotImplemented
        return self.template == other.template and self.variables == other.variables

    def __hash__(self) -> int:
        return hash(self.template)


def stack_name_sub(logical_name: str) -> Sub:
    """Default physical name: ``<stack name>-<logical name>``."""
    return Sub(f"${{AWS::StackName}}-{logical_name}")
