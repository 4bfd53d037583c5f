import asyncio

from shared.client_utils import auth_headers, build_socket_url, http_base_url
from shared.route_utils import extract_client_id


def test_build_socket_url_skips_missing_values():
    url = build_socket_url("ws://hub/ws", {"restaurantId": "r1", "userId": None})

    assert url == "ws://hub/ws?restaurantId=r1"


def test_build_socket_url_appends_to_existing_query():
    assert build_socket_url("ws://hub/ws?v=2", {"userId": "u"}) == "ws://hub/ws?v=2&userId=u"


def test_build_socket_url_without_params():
    assert build_socket_url("ws://hub/ws") == "ws://hub/ws"


def test_auth_headers():
    assert auth_headers("abc") == {"Authorization": "Bearer abc"}
    assert auth_headers(None) == {}
    assert auth_headers("") == {}


def test_http_base_url():
    assert http_base_url("ws://localhost:5000/ws") == "http://localhost:5000"
    assert http_base_url("wss://hub.example.com/ws") == "https://hub.example.com"


def test_client_ids_are_readable_and_distinct():
    first = asyncio.run(extract_client_id("chef"))
    second = asyncio.run(extract_client_id("chef"))
    anonymous = asyncio.run(extract_client_id(None))

    assert first.startswith("chef-")
    assert first != second
    assert anonymous.startswith("client-")
