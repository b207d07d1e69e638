"""Perch — URL path pattern compiler and ordered router.

Compiles route patterns into matchers, dispatches request paths in
registration order, and rebuilds paths from patterns for reverse routing.

Basic usage::

    from perch import PathState, Router

    router = Router()
    router.path("/users/{id}", "user_detail", name="user")
    router.prefix("/static", "static_files")
    router.compile()

    state = PathState.from_raw(b"/users/4%32")
    router.recognize(state)              # "user_detail"
    state["id"]                          # "42"
    router.url_for("user", {"id": 7})    # "/users/7"
"""

__version__ = "0.1.0-dev"
__all__ = [
    "BuildError",
    "Capture",
    "DecodeError",
    "MatchResult",
    "MissingParameter",
    "NoPatterns",
    "PathState",
    "PatternError",
    "PerchError",
    "Quoter",
    "Resource",
    "RouteMatch",
    "Router",
    "RouterConfig",
    "UnknownResource",
    "build_path",
    "decode",
    "encode",
    "requote",
    "requote_str",
]

# public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "BuildError": "perch.errors",
    "DecodeError": "perch.errors",
    "MissingParameter": "perch.errors",
    "NoPatterns": "perch.errors",
    "PatternError": "perch.errors",
    "PerchError": "perch.errors",
    "UnknownResource": "perch.errors",
    "RouterConfig": "perch.config",
    "Quoter": "perch.quoting",
    "decode": "perch.quoting",
    "encode": "perch.quoting",
    "requote": "perch.quoting",
    "requote_str": "perch.quoting",
    "Capture": "perch.routing.path",
    "PathState": "perch.routing.path",
    "MatchResult": "perch.routing.matcher",
    "Resource": "perch.routing.resource",
    "RouteMatch": "perch.routing.router",
    "Router": "perch.routing.router",
    "build_path": "perch.routing.reverse",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
