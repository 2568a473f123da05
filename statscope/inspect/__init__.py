"""HTTP introspection of a running scope tree."""

from statscope.inspect.routes import get_scope, router

__all__ = ["get_scope", "router"]
