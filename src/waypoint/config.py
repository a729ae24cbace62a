"""Router configuration.

RouterConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(use_fragment=True, sort_routes=False)
    """

    # URLs: "#/path" fragments instead of plain paths.
    # None lets the Navigator decide from History.supports_state.
    use_fragment: bool | None = None

    # Matching
    sort_routes: bool = True  # Order sibling candidates by matcher specificity
    ambiguous_routes: Literal["first", "error"] = "first"  # Several siblings match one path

    # Queue overlapping route() calls so commits never interleave.
    # Awaiting route() from an allow awaitable then raises InvariantViolation.
    serialize_navigation: bool = True
