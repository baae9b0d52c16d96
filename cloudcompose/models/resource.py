from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from cloudcompose.errors import ConfigurationError


@dataclass(frozen=True)
class Resource:
    resource_type: str     # e.g. "AWS::SQS::Queue"
    properties: Dict[str, Any] = field(default_factory=dict)
    condition: Optional[str] = None
    depends_on: Optional[Union[str, List[str]]] = None

    def to_dict(self) -> dict:
        # None means "absent"; template.render() drops it
        return {
            "Type": self.resource_type,
            "Condition": self.condition,
            "DependsOn": self.depends_on,
            "Properties": self.properties,
        }


class ResourceGraph(Mapping):
    """
    Read-only, insertion-ordered mapping of logical name to Resource.

    Build one with GraphBuilder; the graph itself offers no way to add,
    replace or remove entries.
    """

    def __init__(self, pairs: List[Tuple[str, Resource]] = ()):
        self._resources: Dict[str, Resource] = dict(pairs)

    def __getitem__(self, logical_name: str) -> Resource:
        return self._resources[logical_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        return f"ResourceGraph({list(self._resources)!r})"

    def to_dict(self) -> dict:
        return {name: r.to_dict() for name, r in self._resources.items()}


class GraphBuilder:
    """Collect (logical name, Resource) pairs, then fold them into a ResourceGraph."""

    def __init__(self):
        self._pairs: List[Tuple[str, Resource]] = []

    @classmethod
    def from_graph(cls, graph: Mapping[str, Resource]) -> "GraphBuilder":
        builder = cls()
        for name, resource in graph.items():
            builder.add(name, resource)
        return builder

    def __contains__(self, logical_name: str) -> bool:
        return any(name == logical_name for name, _ in self._pairs)

    def get(self, logical_name: str) -> Optional[Resource]:
        for name, resource in self._pairs:
            if name == logical_name:
                return resource
        return None

    def add(self, logical_name: str, resource: Resource) -> "GraphBuilder":
        if logical_name in self:
            raise ConfigurationError(f"Duplicate logical name '{logical_name}' in resource graph")
        self._pairs.append((logical_name, resource))
        return self

    def replace(self, logical_name: str, resource: Resource) -> "GraphBuilder":
        """Swap an existing entry, keeping its position."""
        for i, (name, _) in enumerate(self._pairs):
            if name == logical_name:
                self._pairs[i] = (logical_name, resource)
                return self
        raise ConfigurationError(f"No resource named '{logical_name}' to replace")

    def build(self) -> ResourceGraph:
        return ResourceGraph(self._pairs)
