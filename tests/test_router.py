"""Tests for perch.routing.router — ordered first-match-wins router."""

import pytest

from perch.config import RouterConfig
from perch.errors import PatternError, UnknownResource
from perch.routing.matcher import MatchResult
from perch.routing.path import PathState
from perch.routing.resource import Resource
from perch.routing.router import RouteMatch, Router


def _router(*routes: tuple[str, str]) -> Router[str]:
    r: Router[str] = Router()
    for pattern, value in routes:
        r.path(pattern, value)
    r.compile()
    return r


class TestRouterStaticRoutes:
    def test_root(self) -> None:
        r = _router(("/", "index"))

        match = r.match("/")
        assert match is not None
        assert match.value == "index"
        assert match.params == {}

    def test_simple_path(self) -> None:
        r = _router(("/users", "users"))

        match = r.match("/users")
        assert match is not None
        assert match.resource.pattern == "/users"
        assert match.remaining == ""

    def test_multiple_routes(self) -> None:
        r = _router(("/users", "users"), ("/posts", "posts"))

        assert r.match("/users").value == "users"  # type: ignore[union-attr]
        assert r.match("/posts").value == "posts"  # type: ignore[union-attr]

    def test_trailing_slash_is_significant(self) -> None:
        r = _router(("/users", "users"))

        assert r.match("/users/") is None

    def test_not_found(self) -> None:
        r = _router(("/users", "users"))

        assert r.match("/nonexistent") is None


class TestRouterParams:
    def test_string_param(self) -> None:
        r = _router(("/users/{name}", "user"))

        match = r.match("/users/alice")
        assert match is not None
        assert match.params == {"name": "alice"}

    def test_regex_param_rejects_non_digit(self) -> None:
        r = _router(("/users/{id:\\d+}", "user"))

        assert r.match("/users/alice") is None
        assert r.match("/users/42").params == {"id": "42"}  # type: ignore[union-attr]

    def test_multiple_params(self) -> None:
        r = _router(("/users/{user_id}/posts/{post_id}", "post"))

        match = r.match("/users/1/posts/42")
        assert match is not None
        assert match.params == {"user_id": "1", "post_id": "42"}
        assert [c.name for c in match.captures] == ["user_id", "post_id"]

    def test_tail_param(self) -> None:
        r = _router(("/files/{filepath}*", "files"))

        match = r.match("/files/docs/api/v2/index.html")
        assert match is not None
        assert match.params == {"filepath": "docs/api/v2/index.html"}

    def test_captures_are_decoded(self) -> None:
        r = _router(("/users/{id}", "user"))

        assert r.match("/users/4%32").params == {"id": "42"}  # type: ignore[union-attr]


class TestRouterPriority:
    def test_registration_order_beats_specificity(self) -> None:
        r = _router(("/a/{x}", "dynamic"), ("/a/fixed", "fixed"))

        match = r.match("/a/fixed")
        assert match is not None
        assert match.value == "dynamic"
        assert match.params == {"x": "fixed"}

    def test_static_first_when_registered_first(self) -> None:
        r = _router(("/users/me", "me"), ("/users/{id}", "user"))

        assert r.match("/users/me").value == "me"  # type: ignore[union-attr]
        assert r.match("/users/42").value == "user"  # type: ignore[union-attr]

    def test_prefix_and_exact_mixed(self) -> None:
        r: Router[str] = Router()
        r.prefix("/static", "files")
        r.path("/static/logo.png", "logo")
        r.compile()

        match = r.match("/static/logo.png")
        assert match is not None
        assert match.value == "files"
        assert match.remaining == "/logo.png"

    def test_exact_before_prefix(self) -> None:
        r: Router[str] = Router()
        r.path("/static/logo.png", "logo")
        r.prefix("/static", "files")
        r.compile()

        assert r.match("/static/logo.png").value == "logo"  # type: ignore[union-attr]
        assert r.match("/static/app.css").value == "files"  # type: ignore[union-attr]

    def test_decode_failure_falls_through(self) -> None:
        """A capture that cannot be decoded only disqualifies its own resource."""
        r = _router(("/x/{v}", "dynamic"), ("/x/%zz", "literal"))

        assert r.match("/x/%zz").value == "literal"  # type: ignore[union-attr]


class TestRecognize:
    def test_advances_state(self) -> None:
        r = _router(("/users/{id}", "user"))
        state = PathState("/users/42")

        assert r.recognize(state) == "user"
        assert state.skip == len("/users/42")
        assert state["id"] == "42"

    def test_no_match_leaves_state_untouched(self) -> None:
        r = _router(("/users/{id}", "user"))
        state = PathState("/posts/1")

        assert r.recognize(state) is None
        assert state.skip == 0
        assert len(state) == 0

    def test_nested_routers(self) -> None:
        outer: Router[str] = Router()
        outer.prefix("/{tenant}", "tenant")
        outer.compile()
        inner = _router(("/users/{id}", "user"))

        state = PathState("/acme/users/42")
        assert outer.recognize(state) == "tenant"
        assert state.skip == 5
        assert state.remaining() == "/users/42"

        assert inner.recognize(state) == "user"
        assert state.remaining() == ""
        assert [c.name for c in state.captures] == ["tenant", "id"]
        assert state.as_dict() == {"tenant": "acme", "id": "42"}

    def test_nested_root(self) -> None:
        outer: Router[str] = Router()
        outer.prefix("/api", "api")
        outer.compile()
        inner = _router(("/", "index"), ("/users", "users"))

        state = PathState("/api")
        assert outer.recognize(state) == "api"
        assert inner.recognize(state) == "index"

    def test_recognize_fn_veto_continues_scan(self) -> None:
        r = _router(("/items/{id}", "first"), ("/items/{slug}", "second"))
        seen: list[str] = []

        def check(value: str, result: MatchResult) -> bool:
            seen.append(value)
            return value != "first"

        state = PathState("/items/7")
        assert r.recognize_fn(state, check) == "second"
        assert seen == ["first", "second"]
        assert state.as_dict() == {"slug": "7"}

    def test_path_state_requotes(self) -> None:
        r = _router(("/users/{id}", "user"))
        state = r.path_state(b"/users/4%32")

        assert state.path == "/users/42"
        assert r.recognize(state) == "user"

    def test_path_state_uses_config_table(self) -> None:
        default: Router[str] = Router()
        relaxed: Router[str] = Router(config=RouterConfig(requote_protected="%"))

        assert default.path_state("/a%2Fb").path == "/a%2Fb"
        assert relaxed.path_state("/a%2Fb").path == "/a/b"

    def test_recognize_fn_all_vetoed(self) -> None:
        r = _router(("/items/{id}", "first"))
        state = PathState("/items/7")

        assert r.recognize_fn(state, lambda value, result: False) is None
        assert state.skip == 0


class TestRouterLifecycle:
    def test_add_after_compile_raises(self) -> None:
        r: Router[str] = Router()
        r.compile()

        with pytest.raises(RuntimeError, match="Cannot add routes after compilation"):
            r.path("/users", "users")

    def test_add_rejects_malformed_pattern(self) -> None:
        r: Router[str] = Router()
        with pytest.raises(PatternError, match="Unclosed"):
            r.path("/share/{slug", "share")

    def test_routes_in_registration_order(self) -> None:
        r: Router[str] = Router()
        first = r.path("/b", "b")
        second = r.prefix("/a", "a")
        own = Resource("/c")
        r.add(own, "c")

        assert r.routes == [(first, "b"), (second, "a"), (own, "c")]
        assert len(r) == 3
        assert second.is_prefix is True


class TestUrlFor:
    def test_by_name(self) -> None:
        r: Router[str] = Router()
        r.path("/users/{id}", "user", name="user")
        r.compile()

        assert r.url_for("user", {"id": 42}) == "/users/42"

    def test_first_registration_keeps_name(self) -> None:
        r: Router[str] = Router()
        r.path("/v1/users/{id}", "v1", name="user")
        r.path("/v2/users/{id}", "v2", name="user")

        assert r.url_for("user", ["7"]) == "/v1/users/7"

    def test_unknown_name(self) -> None:
        r: Router[str] = Router()

        with pytest.raises(UnknownResource) as exc_info:
            r.url_for("missing")
        assert exc_info.value.name == "missing"


class TestRouteMatch:
    def test_frozen(self) -> None:
        resource = Resource("/")
        match = RouteMatch(value="index", resource=resource, captures=(), remaining="")
        with pytest.raises(AttributeError):
            match.value = "other"  # type: ignore[misc]

    def test_generic_over_value(self) -> None:
        resource = Resource("/users/{id}")
        match = RouteMatch[int](value=7, resource=resource, captures=(), remaining="")
        assert match.value == 7
        assert RouteMatch.__type_params__[0].__name__ == "T"

    def test_router_match_carries_value(self) -> None:
        r: Router[int] = Router()
        r.path("/users/{id}", 42)
        found = r.match("/users/7")
        assert found is not None
        assert found.value == 42
        assert found.params == {"id": "7"}
