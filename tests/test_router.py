import pytest

from galaxite.errors import DuplicateRouteError, RegistrationClosedError
from galaxite.request import Request
from galaxite.response import Response
from galaxite.router import RouteBuilder, Router


async def handler_a(req: Request, res: Response) -> None:
    res.send("a")


async def handler_b(req: Request, res: Response) -> None:
    res.send("b")


# --- Registration -------------------------------------------------------------
def test_register_appends_in_order() -> None:
    router = Router()
    router.register("GET", "/a", handler_a)
    router.register("POST", "/a", handler_b)
    assert [(r.method, r.pattern) for r in router.routes] == [
        ("GET", "/a"),
        ("POST", "/a"),
    ]


def test_register_normalizes_method_case() -> None:
    router = Router()
    route = router.register("get", "/a", handler_a)
    assert route.method == "GET"


def test_duplicate_route_rejected() -> None:
    router = Router()
    router.register("GET", "/users/:id", handler_a)
    with pytest.raises(DuplicateRouteError) as exc_info:
        router.register("GET", "/users/:id", handler_b)
    assert str(exc_info.value) == "Duplicate endpoint found: GET /users/:id"
    assert len(router.routes) == 1


def test_duplicate_detection_is_structural() -> None:
    router = Router()
    router.register("GET", "/users/:id", handler_a)
    with pytest.raises(DuplicateRouteError):
        router.register("GET", "/users/:uid", handler_b)
    with pytest.raises(DuplicateRouteError):
        router.register("GET", "/users/:id/", handler_b)


def test_same_pattern_different_methods_allowed() -> None:
    router = Router()
    router.register("GET", "/users/:id", handler_a)
    router.register("DELETE", "/users/:id", handler_b)
    assert len(router.routes) == 2


def test_unknown_method_rejected() -> None:
    router = Router()
    with pytest.raises(ValueError, match="unknown HTTP method"):
        router.register("FETCH", "/a", handler_a)


def test_register_after_finalize_rejected() -> None:
    router = Router()
    router.register("GET", "/a", handler_a)
    router.finalize()
    assert router.finalized
    with pytest.raises(RegistrationClosedError):
        router.register("GET", "/b", handler_b)


# --- Matching -----------------------------------------------------------------
def test_match_extracts_ordered_params() -> None:
    router = Router()
    router.register("GET", "/a/:x/b/:y", handler_a)
    match = router.match("GET", "/a/1/b/2")
    assert match is not None
    assert match.handler is handler_a
    assert list(match.params.items()) == [("x", "1"), ("y", "2")]


def test_match_requires_method() -> None:
    router = Router()
    router.register("GET", "/a", handler_a)
    assert router.match("POST", "/a") is None
    assert router.match("get", "/a") is not None


def test_first_match_wins() -> None:
    router = Router()
    router.register("GET", "/users/:id", handler_a)
    router.register("GET", "/users/active", handler_b)
    match = router.match("GET", "/users/active")
    assert match is not None
    assert match.handler is handler_a
    assert match.params == {"id": "active"}


def test_literal_before_param_wins() -> None:
    router = Router()
    router.register("GET", "/users/active", handler_b)
    router.register("GET", "/users/:id", handler_a)
    match = router.match("GET", "/users/active")
    assert match is not None
    assert match.handler is handler_b


def test_no_match_returns_none() -> None:
    router = Router()
    router.register("GET", "/a", handler_a)
    assert router.match("GET", "/b") is None


# --- Resolution ---------------------------------------------------------------
@pytest.mark.parametrize("raw_path", ["/users/7", "/users/7/", "/users/7//"])
def test_resolve_trailing_slash_idempotent(raw_path: str) -> None:
    router = Router()
    router.register("GET", "/users/:id", handler_a)
    request = Request(method="GET", raw_path=raw_path)
    match = router.resolve(request)
    assert match is not None
    assert request.route.path == "/users/7"
    assert request.route.params == {"id": "7"}
    assert request.route.pattern == "/users/:id"


def test_resolve_splits_query() -> None:
    router = Router()
    router.register("GET", "/search", handler_a)
    request = Request(method="GET", raw_path="/search/?q=cats&tag=a&tag=b&empty=")
    match = router.resolve(request)
    assert match is not None
    assert request.route.path == "/search"
    assert request.route.query == {"q": "cats", "tag": ["a", "b"], "empty": ""}


def test_resolve_query_split_at_first_question_mark() -> None:
    router = Router()
    request = Request(method="GET", raw_path="/a?x=1?2")
    router.resolve(request)
    assert request.route.query == {"x": "1?2"}


def test_resolve_records_route_on_miss() -> None:
    router = Router()
    request = Request(method="GET", raw_path="/missing/?page=2")
    assert router.resolve(request) is None
    assert request.route.path == "/missing"
    assert request.route.query == {"page": "2"}
    assert request.route.params == {}
    assert request.route.pattern == ""


def test_resolve_optional_param_absent_is_none() -> None:
    router = Router()
    router.register("GET", "/files/:name?", handler_a)
    request = Request(method="GET", raw_path="/files/")
    assert router.resolve(request) is not None
    assert request.route.params == {"name": None}


def test_resolve_percent_decodes_params() -> None:
    router = Router()
    router.register("GET", "/tags/:tag", handler_a)
    request = Request(method="GET", raw_path="/tags/caf%C3%A9")
    assert router.resolve(request) is not None
    assert request.route.params == {"tag": "café"}


def test_resolve_empty_path_is_root() -> None:
    router = Router()
    router.register("GET", "/", handler_a)
    request = Request(method="GET", raw_path="?x=1")
    assert router.resolve(request) is not None
    assert request.route.path == "/"


# --- Route builder ------------------------------------------------------------
@pytest.mark.parametrize(
    "method_name,http_method",
    [
        ("get", "GET"),
        ("post", "POST"),
        ("put", "PUT"),
        ("patch", "PATCH"),
        ("delete", "DELETE"),
        ("head", "HEAD"),
        ("options", "OPTIONS"),
    ],
)
def test_builder_methods(method_name: str, http_method: str) -> None:
    router = Router()
    builder = RouteBuilder(router, "/thing")
    assert getattr(builder, method_name)(handler_a) is builder
    match = router.match(http_method, "/thing")
    assert match is not None
    assert match.handler is handler_a


def test_builder_chains() -> None:
    router = Router()
    RouteBuilder(router, "/users/:id").get(handler_a).put(handler_b)
    assert [r.method for r in router.routes] == ["GET", "PUT"]


def test_builder_duplicate_raises() -> None:
    router = Router()
    builder = RouteBuilder(router, "/a").get(handler_a)
    with pytest.raises(DuplicateRouteError):
        builder.get(handler_b)
