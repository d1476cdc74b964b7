import json
from pathlib import Path

import pytest
from conftest import MockHTTPProtocol

from galaxite.errors import ResponseAlreadySentError
from galaxite.response import Response


def test_send_defaults() -> None:
    proto = MockHTTPProtocol()
    Response(proto).send("hello")
    assert proto.response_status == 200
    assert proto.header("content-type") == "text/plain"
    assert proto.response_body == b"hello"


def test_status_is_chainable() -> None:
    proto = MockHTTPProtocol()
    Response(proto).status(201).send("created")
    assert proto.response_status == 201


@pytest.mark.parametrize(
    "writer,value,content_type",
    [
        ("html", "<h1>hi</h1>", "text/html"),
        ("csv", "a,b\n1,2\n", "text/csv"),
    ],
)
def test_text_writers(writer: str, value: str, content_type: str) -> None:
    proto = MockHTTPProtocol()
    getattr(Response(proto), writer)(value)
    assert proto.header("content-type") == content_type
    assert proto.response_body == value.encode()


def test_json() -> None:
    proto = MockHTTPProtocol()
    Response(proto).json({"id": 1, "tags": ["a"]})
    assert proto.header("content-type") == "application/json"
    assert json.loads(proto.response_body or b"") == {"id": 1, "tags": ["a"]}


def test_empty() -> None:
    proto = MockHTTPProtocol()
    Response(proto).status(204).empty()
    assert proto.response_status == 204
    assert proto.response_body == b""


def test_second_write_raises() -> None:
    proto = MockHTTPProtocol()
    response = Response(proto)
    response.send("first")
    assert response.sent
    with pytest.raises(ResponseAlreadySentError):
        response.send("second")
    assert proto.responses == 1
    assert proto.response_body == b"first"


def test_set_header_replaces_and_lowercases() -> None:
    proto = MockHTTPProtocol()
    response = Response(proto)
    response.set_header("X-Thing", "1").set_header("x-thing", "2")
    assert response.get_header("X-THING") == "2"
    response.send("ok")
    assert proto.header_values("x-thing") == ["2"]


def test_set_cookie_attributes() -> None:
    proto = MockHTTPProtocol()
    response = Response(proto)
    response.set_cookie(
        "session",
        "abc",
        max_age=3600,
        domain="example.com",
        path="/",
        secure=True,
        http_only=True,
    )
    response.send("ok")
    assert proto.header_values("set-cookie") == [
        "session=abc; Max-Age=3600; Domain=example.com; Path=/; Secure; HttpOnly"
    ]


def test_multiple_cookies_are_kept() -> None:
    proto = MockHTTPProtocol()
    response = Response(proto)
    response.set_cookie("a", "1").set_cookie("b", "2").delete_cookie("old")
    response.send("ok")
    assert proto.header_values("set-cookie") == ["a=1", "b=2", "old=; Max-Age=0"]


@pytest.mark.asyncio
async def test_download(tmp_path: Path) -> None:
    report = tmp_path / "report.pdf"
    report.write_bytes(b"%PDF-1.4 data")
    proto = MockHTTPProtocol()

    await Response(proto).download(str(report))

    assert proto.response_status == 200
    assert proto.response_file_path == str(report)
    assert proto.header("content-type") == "application/octet-stream"
    assert proto.header("content-disposition") == "attachment; filename=report.pdf"
    assert proto.header("content-length") == str(len(b"%PDF-1.4 data"))


@pytest.mark.asyncio
async def test_download_custom_filename(tmp_path: Path) -> None:
    data = tmp_path / "blob"
    data.write_bytes(b"x")
    proto = MockHTTPProtocol()

    await Response(proto).download(str(data), "export.csv")

    assert proto.header("content-disposition") == "attachment; filename=export.csv"


@pytest.mark.asyncio
async def test_download_missing_file_is_500(tmp_path: Path) -> None:
    proto = MockHTTPProtocol()
    await Response(proto).download(str(tmp_path / "missing.txt"))
    assert proto.response_status == 500
    assert proto.response_body == b"500 Internal Server Error"
    assert proto.response_file_path is None


@pytest.mark.asyncio
async def test_download_directory_is_500(tmp_path: Path) -> None:
    proto = MockHTTPProtocol()
    await Response(proto).download(str(tmp_path))
    assert proto.response_status == 500
