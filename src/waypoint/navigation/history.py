"""History protocol and an in-memory implementation.

A ``History`` is the platform side of navigation: it knows the current
location, records new entries, steps back, and reports location changes
and link clicks that did not originate from the navigator.

``MemoryHistory`` keeps an entry stack in memory. Use it for tests and
for hosts without a browser::

    history = MemoryHistory("/inbox")
    navigator = Navigator(history)
    await navigator.listen()
    history.click("/inbox/42")   # as if the user followed a link
"""

from typing import Protocol

from waypoint.routing.events import EventChannel


class History(Protocol):
    """Platform history binding used by ``Navigator``.

    ``on_change`` publishes the new location whenever it changes from
    outside the navigator (back/forward, typed URL). ``on_link_click``
    publishes the ``href`` of a followed link. ``index`` is the position
    of the current entry.
    """

    supports_state: bool
    title: str
    on_change: EventChannel[str]
    on_link_click: EventChannel[str]

    @property
    def index(self) -> int: ...

    def current_location(self) -> str: ...

    def push_state(self, location: str, title: str | None = None) -> None: ...

    def replace_state(self, location: str, title: str | None = None) -> None: ...

    def back(self) -> None: ...

    def forward(self) -> None: ...


class MemoryHistory:
    """History backed by a list of locations and a cursor."""

    __slots__ = ("_entries", "_index", "on_change", "on_link_click", "supports_state", "title")

    def __init__(self, initial: str = "/", *, title: str = "", supports_state: bool = True) -> None:
        self._entries: list[str] = [initial]
        self._index = 0
        self.title = title
        self.supports_state = supports_state
        self.on_change: EventChannel[str] = EventChannel()
        self.on_link_click: EventChannel[str] = EventChannel()

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def index(self) -> int:
        return self._index

    def current_location(self) -> str:
        return self._entries[self._index]

    def push_state(self, location: str, title: str | None = None) -> None:
        """Add an entry after the current one, dropping any forward entries."""
        del self._entries[self._index + 1 :]
        self._entries.append(location)
        self._index += 1
        if title is not None:
            self.title = title

    def replace_state(self, location: str, title: str | None = None) -> None:
        self._entries[self._index] = location
        if title is not None:
            self.title = title

    def back(self) -> None:
        """Step back one entry and report the change. No-op at the first entry."""
        if self._index == 0:
            return
        self._index -= 1
        self.on_change.publish(self.current_location())

    def forward(self) -> None:
        """Step forward one entry and report the change. No-op at the last entry."""
        if self._index == len(self._entries) - 1:
            return
        self._index += 1
        self.on_change.publish(self.current_location())

    def navigate(self, location: str) -> None:
        """An external location change, e.g. a typed URL or a hash assignment."""
        self.push_state(location)
        self.on_change.publish(location)

    def click(self, href: str) -> None:
        """Simulate the user following a link."""
        self.on_link_click.publish(href)

    def __repr__(self) -> str:
        return f"MemoryHistory({self.current_location()!r}, entries={len(self._entries)})"
