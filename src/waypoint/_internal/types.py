"""Shared type aliases used across waypoint modules."""

import re
from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

# Path parameters captured by a matcher, name -> raw segment
Parameters: TypeAlias = dict[str, str]

# Read-only parameters accepted by URL builders
ParameterMapping: TypeAlias = Mapping[str, Any]

# Query key filter: a str matches as a key prefix, compiled regex via .match()
QueryKeyPattern: TypeAlias = str | re.Pattern[str]

# Event listener: receives one event, return value ignored
Listener: TypeAlias = Callable[[Any], object]
