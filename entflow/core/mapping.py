from __future__ import annotations
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional, Set

from .naming import from_camel


@dataclass(frozen=True)
class MappingConfig:
    """Options for one wire-mapping call.

    Attributes:
        max_depth: Relation hops expanded before truncating to identities.
            Negative values are treated as 0.
        detect_cycles: Truncate relations whose object is already on the
            current path.
        include_null_fields: Emit ``None`` values instead of omitting them.
    """

    max_depth: int = 1
    detect_cycles: bool = True
    include_null_fields: bool = False

    DEFAULT: ClassVar['MappingConfig']
    SHALLOW: ClassVar['MappingConfig']
    DEEP: ClassVar['MappingConfig']

    def __post_init__(self):
        depth = int(self.max_depth or 0)
        object.__setattr__(self, 'max_depth', depth if depth > 0 else 0)

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]]) -> 'MappingConfig':
        """Build a config from ``maxDepth``/``max_depth`` style option names."""
        known = {'max_depth', 'detect_cycles', 'include_null_fields'}
        kwargs: Dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = from_camel(str(key))
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)


MappingConfig.DEFAULT = MappingConfig()
MappingConfig.SHALLOW = MappingConfig(max_depth=0)
MappingConfig.DEEP = MappingConfig(max_depth=3)


class MappingContext:
    """Per-call traversal state: the objects on the current recursion path.

    Entries are removed again on the way back up, so an object reachable
    through two independent paths is mapped on both.
    """

    __slots__ = ('config', '_active')

    def __init__(self, config: Optional[MappingConfig] = None):
        self.config = config or MappingConfig.DEFAULT
        self._active: Set[int] = set()

    def enter(self, obj: Any) -> None:
        if self.config.detect_cycles and obj is not None:
            self._active.add(id(obj))

    def exit(self, obj: Any) -> None:
        if self.config.detect_cycles and obj is not None:
            self._active.discard(id(obj))

    def is_being_mapped(self, obj: Any) -> bool:
        return self.config.detect_cycles and obj is not None and id(obj) in self._active

    @property
    def active_count(self) -> int:
        return len(self._active)

    def fork(self) -> 'MappingContext':
        """Fresh context with the same config and an empty path."""
        return MappingContext(self.config)
