"""
Core client components: logging, configuration validation, errors,
session state and the navigation guard.

Import from the submodules directly (core.session_state, core.route_guard).
"""
