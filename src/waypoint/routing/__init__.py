"""Routing — the route tree, matching, and the vetoable enter/leave lifecycle.

Routes are declared once with ``add_route`` and never removed. Routing
moves the active chain; URL builders read it back.
"""
