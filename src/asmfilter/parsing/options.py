from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping

# camelCase names used by snapshot fixtures and the config file
_CAMEL_NAMES = {
    "directives": "directives",
    "labels": "labels",
    "commentOnly": "comment_only",
    "binary": "binary",
    "libraryCode": "library_code",
    "dontMaskFilenames": "dont_mask_filenames",
}


@dataclass(frozen=True)
class FilterOptions:
    """Independent filter flags. No flag's meaning depends on another's value."""
    directives: bool = False
    labels: bool = False
    comment_only: bool = False
    binary: bool = False
    library_code: bool = False
    dont_mask_filenames: bool = False

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, bool):
                raise TypeError(f"Filter flag '{f.name}' must be a bool, got {type(value).__name__}")

    @property
    def mask_filenames(self) -> bool:
        return self.library_code and not self.dont_mask_filenames

    @classmethod
    def from_mapping(cls, flags: Mapping[str, Any]) -> "FilterOptions":
        """Accepts both camelCase (commentOnly) and snake_case (comment_only) keys."""
        kwargs = {}
        known = {f.name for f in fields(cls)}
        for key, value in flags.items():
            name = _CAMEL_NAMES.get(key, key)
            if name not in known:
                raise TypeError(f"Unknown filter flag '{key}'")
            kwargs[name] = value
        return cls(**kwargs)

    def to_mapping(self) -> Dict[str, bool]:
        return {camel: getattr(self, name) for camel, name in _CAMEL_NAMES.items()}

    def toggled(self, flag: str) -> "FilterOptions":
        name = _CAMEL_NAMES.get(flag, flag)
        if name not in {f.name for f in fields(self)}:
            raise KeyError(f"Unknown filter flag '{flag}'")
        return replace(self, **{name: not getattr(self, name)})

    def enabled(self) -> list:
        return [camel for camel, on in self.to_mapping().items() if on]

    def __le__(self, other: "FilterOptions") -> bool:
        """Flag-subset ordering: every flag set here is also set in `other`."""
        return all(getattr(other, f.name) or not getattr(self, f.name) for f in fields(self))
