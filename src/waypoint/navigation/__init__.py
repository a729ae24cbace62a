"""Navigation — binds the routing engine to a platform history.

The engine decides; the navigator reads locations, pushes entries, and
rolls back the platform when a navigation is vetoed.
"""
