"""Route Tree - Switch assembly, endpoint collection, OpenAPIRoute document.

Tests cover:
    - Nested base URLs resolve to absolute paths ("/a" + "/" + "/b" → "/a/b")
    - Root-mounted nesting never produces "//"
    - Filters and document nodes contribute no endpoints
    - Depth-first, declaration-order collection
    - Unknown node kinds rejected at assembly
    - Document built once, identical across builds, served as a copy
"""

import pytest

from switchyard.api.filters import ErrorHandler, Middleware
from switchyard.api.route import Route
from switchyard.api.tree import OpenAPIRoute, Switch, collect_endpoints
from switchyard.core.errors import DeclarationError
from switchyard.core.parameters import path
from switchyard.schemas.errors import ErrorEnvelope
from switchyard.schemas.openapi import Info


async def _noop(request, params):
    return None


async def _passthrough(request, call_next):
    return await call_next(request)


async def _decline(request, exc):
    raise exc


def _route(url: str, operation_id: str, method: str = "GET") -> Route:
    return Route(method, url, operation_id, {}, None, _noop)


INFO = Info(title="Tree", version="0.1.0")


# ─── collect_endpoints ───────────────────────────────────────────

def test_nested_base_urls_resolve():
    root = Switch("/", [Switch("/a", [Switch("/", [_route("/b", "b")])])])
    (endpoint,) = collect_endpoints(root)
    assert endpoint.full_path == "/a/b"
    assert endpoint.request_schema.operation_id == "b"


def test_root_nesting_never_doubles_slashes():
    root = Switch("/", [Switch("/", [Switch("/a", [_route("/", "index")])])])
    (endpoint,) = collect_endpoints(root)
    assert endpoint.full_path == "/a"


def test_root_route_at_slash():
    root = Switch("/", [Switch("/", [_route("/", "home")])])
    assert [e.full_path for e in collect_endpoints(root)] == ["/"]


def test_root_base_url_included():
    root = Switch("/api", [_route("/items", "items")])
    assert [e.full_path for e in collect_endpoints(root)] == ["/api/items"]


def test_filters_and_spec_nodes_contribute_nothing():
    inner = Switch("/v1", [_route("/x", "x")])
    root = Switch("/", [
        Middleware(_passthrough),
        inner,
        ErrorHandler(_decline),
        OpenAPIRoute("/openapi.json", INFO, inner),
    ])
    assert [e.full_path for e in collect_endpoints(root)] == ["/v1/x"]


def test_depth_first_declaration_order():
    root = Switch("/", [
        _route("/first", "first"),
        Switch("/nested", [
            _route("/second", "second"),
            Switch("/deeper", [_route("/third", "third")]),
        ]),
        _route("/fourth", "fourth"),
    ])
    assert [e.request_schema.operation_id for e in collect_endpoints(root)] == [
        "first", "second", "third", "fourth",
    ]


def test_path_template_kept_in_full_path():
    route = Route.get("/items/{id}", "getItem", {"id": path(int)}, None, _noop)
    root = Switch("/api", [route])
    (endpoint,) = collect_endpoints(root)
    assert endpoint.full_path == "/api/items/{id}"
    assert endpoint.request_schema is route.request_schema


# ─── Switch assembly ─────────────────────────────────────────────

def test_switch_compiles_every_child():
    root = Switch("/", [
        Middleware(_passthrough),
        _route("/x", "x"),
        ErrorHandler(_decline),
    ])
    assert root.dispatcher.matches("/x", "GET")
    assert not root.dispatcher.matches("/y", "GET")


def test_switch_rejects_unknown_nodes():
    with pytest.raises(DeclarationError, match="Unsupported node"):
        Switch("/", [object()])


def test_switch_base_url_must_start_with_slash():
    with pytest.raises(DeclarationError):
        Switch("api", [])


def test_switch_children_immutable():
    root = Switch("/", [_route("/x", "x")])
    assert isinstance(root.children, tuple)


# ─── OpenAPIRoute ────────────────────────────────────────────────

def _api() -> Switch:
    return Switch("/api", [
        Middleware(_passthrough),
        Route.get("/items/{id}", "getItem", {"id": path(int)}, dict, _noop),
        Switch("/admin", [_route("/stats", "stats")]),
    ])


def test_document_has_one_entry_per_endpoint():
    spec = OpenAPIRoute("/openapi.json", INFO, _api()).spec
    assert set(spec["paths"]) == {"/api/items/{id}", "/api/admin/stats"}
    assert spec["info"]["title"] == "Tree"


def test_document_derivation_is_idempotent():
    api = _api()
    first = OpenAPIRoute("/openapi.json", INFO, api, {"400": ErrorEnvelope})
    second = OpenAPIRoute("/openapi.json", INFO, api, {"400": ErrorEnvelope})
    assert first.spec == second.spec
    assert first._body == second._body


def test_spec_is_a_copy():
    route = OpenAPIRoute("/openapi.json", INFO, _api())
    route.spec["paths"].clear()
    assert route.spec["paths"]


def test_document_version_from_settings(monkeypatch):
    monkeypatch.setenv("SWITCHYARD_OPENAPI_VERSION", "3.0.3")
    assert OpenAPIRoute("/doc", INFO, _api()).spec["openapi"] == "3.0.3"


def test_document_version_argument_wins(monkeypatch):
    monkeypatch.setenv("SWITCHYARD_OPENAPI_VERSION", "3.0.3")
    spec = OpenAPIRoute("/doc", INFO, _api(), openapi_version="3.1.1").spec
    assert spec["openapi"] == "3.1.1"


def test_spec_path_must_start_with_slash():
    with pytest.raises(DeclarationError):
        OpenAPIRoute("openapi.json", INFO, _api())
