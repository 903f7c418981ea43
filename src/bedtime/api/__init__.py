"""
HTTP layer: route registration and app-extension accessors.

Import ``register_routes`` from ``src.bedtime.api.routes``.
"""
