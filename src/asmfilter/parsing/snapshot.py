"""
Canonical, key-sorted JSON for FilterResult snapshots.
The advisory timing and the filtered counter are left out so snapshots of the
same listing compare byte-for-byte.
"""
import json
from typing import Any, Dict, Union

from .options import FilterOptions
from .pipeline import FilterResult, filter_asm

VOLATILE_KEYS = ("parsingTime", "filteredCount")

# Option combinations exercised by the snapshot suite, keyed by fixture suffix
OPTION_SUITES: Dict[str, FilterOptions] = {
    "none": FilterOptions(),
    "directives": FilterOptions(directives=True),
    "directives.labels": FilterOptions(directives=True, labels=True),
    "directives.labels.comments": FilterOptions(directives=True, labels=True, comment_only=True),
    "binary.directives.labels.comments": FilterOptions(
        binary=True, directives=True, labels=True, comment_only=True
    ),
    "binary.directives.labels.comments.library": FilterOptions(
        binary=True, directives=True, labels=True, comment_only=True, library_code=True
    ),
    "binary.directives.labels.comments.library.dontMaskFilenames": FilterOptions(
        binary=True, directives=True, labels=True, comment_only=True, library_code=True,
        dont_mask_filenames=True,
    ),
    "directives.comments": FilterOptions(directives=True, comment_only=True),
    "directives.library": FilterOptions(directives=True, library_code=True),
    "directives.labels.comments.library": FilterOptions(
        directives=True, labels=True, comment_only=True, library_code=True
    ),
    "directives.labels.comments.library.dontMaskFilenames": FilterOptions(
        directives=True, labels=True, comment_only=True, library_code=True, dont_mask_filenames=True
    ),
}

# Library suites only make sense for listings with byte payload
BINARY_ONLY_SUITES = (
    "binary.directives.labels.comments.library",
    "binary.directives.labels.comments.library.dontMaskFilenames",
)


def order_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: order_keys(data[key]) for key in sorted(data)}
    if isinstance(data, list):
        return [order_keys(item) for item in data]
    return data


def canonical_json(result: Union[FilterResult, Dict[str, Any]]) -> str:
    data = result.to_dict() if isinstance(result, FilterResult) else dict(result)
    for key in VOLATILE_KEYS:
        data.pop(key, None)
    return json.dumps(order_keys(data), indent=2) + "\n"


def run_suite(raw_asm: str, binary_listing: bool = False, **filter_kwargs) -> Dict[str, str]:
    """Filter one listing under every option suite; suite name -> canonical JSON."""
    snapshots = {}
    for name, options in OPTION_SUITES.items():
        if name in BINARY_ONLY_SUITES and not binary_listing:
            continue
        snapshots[name] = canonical_json(filter_asm(raw_asm, options, **filter_kwargs))
    return snapshots
