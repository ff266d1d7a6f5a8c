from __future__ import annotations

import base64

import pytest
from conftest import ORIGIN, make_response

from sutprobe.client import ApiKeyAuth, RequestOptions, Session, SessionClient
from sutprobe.client.session_client import XSRF_EXPIRED_MARKER
from sutprobe.errors import (
    AuthHandshakeError,
    BodyParseError,
    ConfigError,
    RequestFailedError,
    UnexpectedSuccessError,
)

EXPIRED_BODY = f"403 Forbidden\nxsrf token expired [{XSRF_EXPIRED_MARKER}4KW2]"


def test_init_session_reads_xsrf_token_and_cookies(client, transport) -> None:  # noqa: ANN001
    transport.handshake()

    session = client.init_session("http://x")

    assert session == Session(xsrf_token="abc123", cookie_header="XSRF-TOKEN=abc123; dwCoSid=sid42")
    assert client.session is session
    assert transport.calls[0].url == "http://x"


def test_init_session_keeps_expires_dates_intact(client, transport) -> None:  # noqa: ANN001
    transport.handshake("a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT; Path=/, XSRF-TOKEN=tok; Path=/")

    session = client.init_session()

    assert session.xsrf_token == "tok"
    assert session.cookie_header == "a=1; XSRF-TOKEN=tok"


def test_init_session_without_token_fails(client, transport) -> None:  # noqa: ANN001
    transport.handshake("dwCoSid=sid42; Path=/")

    with pytest.raises(AuthHandshakeError, match="Got no xsrf token"):
        client.init_session()
    assert client.session is None


def test_init_session_non_success_fails(client, transport) -> None:  # noqa: ANN001
    transport.queue("GET", "/", make_response(502, "Bad gateway"))

    with pytest.raises(AuthHandshakeError, match="502"):
        client.init_session()


def test_get_without_password_fails_before_sending(settings, transport, test_logger) -> None:  # noqa: ANN001
    settings.e2e_test_password = None
    client = SessionClient(settings, http=transport, logger=test_logger)

    with pytest.raises(ConfigError):
        client.get(f"{ORIGIN}/-/test-counters")
    assert transport.calls == []


def test_get_appends_password_and_session_headers(client, transport) -> None:  # noqa: ANN001
    transport.handshake()
    transport.queue("GET", "/-/v0/list-users", make_response(200, {"users": []}))
    client.init_session()

    response = client.get(f"{ORIGIN}/-/v0/list-users?usernamePrefix=ma")

    call = transport.calls[-1]
    assert call.url == f"{ORIGIN}/-/v0/list-users?usernamePrefix=ma&e2eTestPassword=public"
    assert call.headers == {"X-XSRF-TOKEN": "abc123", "Cookie": "XSRF-TOKEN=abc123; dwCoSid=sid42"}
    assert response.json() == {"users": []}
    assert response.url == f"{ORIGIN}/-/v0/list-users?usernamePrefix=ma"


def test_get_without_session_sends_no_auth_headers(client, transport) -> None:  # noqa: ANN001
    transport.queue("GET", "/-/test-counters", make_response(200, {}))

    client.get(f"{ORIGIN}/-/test-counters")

    assert transport.calls[0].url.endswith("/-/test-counters?e2eTestPassword=public")
    assert transport.calls[0].headers == {}


def test_get_failure_raises_with_status_and_body(client, transport) -> None:  # noqa: ANN001
    transport.queue("GET", "/-/test-counters", make_response(500, "Internal error TyE123"))

    with pytest.raises(RequestFailedError) as exc_info:
        client.get(f"{ORIGIN}/-/test-counters")

    assert exc_info.value.status_code == 500
    assert "TyE123" in str(exc_info.value)


def test_post_recovers_once_from_expired_token(client, transport, monkeypatch) -> None:  # noqa: ANN001
    transport.handshake()
    transport.queue(
        "POST",
        "/-/play-time",
        make_response(403, EXPIRED_BODY),
        make_response(200, "{}"),
    )
    client.init_session()

    handshakes = []
    original_init = client.init_session

    def counting_init(origin=None):  # noqa: ANN001
        handshakes.append(origin)
        return original_init(origin)

    monkeypatch.setattr(client, "init_session", counting_init)

    response = client.post(f"{ORIGIN}/-/play-time", {"seconds": 60})

    assert response.status_code == 200
    assert len(handshakes) == 1
    assert len(transport.calls_to("POST", "/-/play-time")) == 2
    assert len(transport.calls_to("GET", "/")) == 2


def test_post_replaces_session_after_expiry(client, transport) -> None:  # noqa: ANN001
    transport.queue(
        "GET",
        "/",
        make_response(200, "", {"Set-Cookie": "XSRF-TOKEN=old; Path=/"}),
        make_response(200, "", {"Set-Cookie": "XSRF-TOKEN=new; Path=/"}),
    )
    transport.queue("POST", "/-/skip-rate-limits", make_response(403, EXPIRED_BODY), make_response(200, "{}"))
    old_session = client.init_session()

    client.post(f"{ORIGIN}/-/skip-rate-limits", {"siteId": 3})

    posts = transport.calls_to("POST", "/-/skip-rate-limits")
    assert posts[0].headers["X-XSRF-TOKEN"] == "old"
    assert posts[1].headers["X-XSRF-TOKEN"] == "new"
    assert client.session is not old_session
    assert old_session.xsrf_token == "old"


def test_post_second_expiry_is_not_retried(client, transport) -> None:  # noqa: ANN001
    transport.handshake()
    transport.queue("POST", "/-/play-time", make_response(403, EXPIRED_BODY))
    client.init_session()

    with pytest.raises(RequestFailedError) as exc_info:
        client.post(f"{ORIGIN}/-/play-time", {"seconds": 60})

    assert exc_info.value.status_code == 403
    assert len(transport.calls_to("POST", "/-/play-time")) == 2
    assert len(transport.calls_to("GET", "/")) == 2


def test_post_without_retry_flag_does_not_refresh(client, transport) -> None:  # noqa: ANN001
    transport.handshake()
    transport.queue("POST", "/-/play-time", make_response(403, EXPIRED_BODY))
    client.init_session()

    with pytest.raises(RequestFailedError):
        client.post(f"{ORIGIN}/-/play-time", {"seconds": 1}, RequestOptions(retry_if_expired=False))

    assert len(transport.calls_to("POST", "/-/play-time")) == 1
    assert len(transport.calls_to("GET", "/")) == 1


def test_other_failures_are_not_retried(client, transport) -> None:  # noqa: ANN001
    transport.queue("POST", "/-/delete-redis-key", make_response(400, "Bad request TyE2"))

    with pytest.raises(RequestFailedError):
        client.post(f"{ORIGIN}/-/delete-redis-key", {"key": "k"})
    assert len(transport.calls) == 1


def test_expect_failure_inverts_success(client, transport) -> None:  # noqa: ANN001
    transport.queue("POST", "/-/v0/upsert-simple", make_response(200, "{}"))
    options = RequestOptions(expect_failure=True)

    with pytest.raises(UnexpectedSuccessError):
        client.post(f"{ORIGIN}/-/v0/upsert-simple", {}, options)


def test_expect_failure_returns_failed_response(client, transport) -> None:  # noqa: ANN001
    transport.queue("POST", "/-/v0/upsert-simple", make_response(403, "Bad API secret TyEAPI"))

    response = client.post(f"{ORIGIN}/-/v0/upsert-simple", {}, RequestOptions(expect_failure=True))

    assert response.status_code == 403
    assert "TyEAPI" in response.body_text


def test_api_key_auth_replaces_cookie_headers(client, transport) -> None:  # noqa: ANN001
    transport.handshake()
    transport.queue("POST", "/-/v0/upsert-simple", make_response(200, "{}"))
    client.init_session()

    client.post(f"{ORIGIN}/-/v0/upsert-simple", {"a": 1}, RequestOptions(auth=ApiKeyAuth(2, "s3cret")))

    headers = transport.calls[-1].headers
    assert set(headers) == {"Authorization"}
    encoded = headers["Authorization"].removeprefix("Basic ")
    assert base64.b64decode(encoded).decode() == "talkyardId=2:s3cret"
    assert transport.calls[-1].json == {"a": 1}


def test_quote_in_header_value_stops_the_request(client, transport) -> None:  # noqa: ANN001
    transport.handshake("XSRF-TOKEN=ab'c; Path=/")
    transport.queue("POST", "/-/play-time", make_response(200, "{}"))
    client.init_session()

    with pytest.raises(ConfigError):
        client.post(f"{ORIGIN}/-/play-time", {"seconds": 1})
    assert transport.calls_to("POST", "/-/play-time") == []


def test_json_parse_error_carries_body(client, transport) -> None:  # noqa: ANN001
    transport.queue("GET", "/-/test-counters", make_response(200, "<html>not json</html>"))

    response = client.get(f"{ORIGIN}/-/test-counters")

    with pytest.raises(BodyParseError) as exc_info:
        response.json()
    assert exc_info.value.body == "<html>not json</html>"


def test_post_without_password_fails_before_sending(settings, transport, test_logger) -> None:  # noqa: ANN001
    settings.e2e_test_password = None
    client = SessionClient(settings, http=transport, logger=test_logger)

    with pytest.raises(ConfigError, match="SUTPROBE_E2E_TEST_PASSWORD"):
        client.post(f"{ORIGIN}/-/play-time", {"seconds": 60})
    assert transport.calls == []


def test_password_is_url_encoded(settings, transport, test_logger) -> None:  # noqa: ANN001
    settings.e2e_test_password = "a&b#c d"
    client = SessionClient(settings, http=transport, logger=test_logger)
    transport.queue("GET", "/-/test-counters", make_response(200, {}))

    client.get(f"{ORIGIN}/-/test-counters?x=1")

    call = transport.calls[0]
    assert call.url.endswith("&e2eTestPassword=a%26b%23c%20d")
    assert call.query == {"x": ["1"], "e2eTestPassword": ["a&b#c d"]}


def test_body_without_charset_is_read_as_utf8(client, transport) -> None:  # noqa: ANN001
    raw = make_response(500, "Ошибка TyE500 ✗", {"Content-Type": "text/plain"})
    raw.encoding = "ISO-8859-1"
    transport.queue("GET", "/-/test-counters", raw)

    with pytest.raises(RequestFailedError) as exc_info:
        client.get(f"{ORIGIN}/-/test-counters")

    assert "Ошибка TyE500 ✗" in str(exc_info.value)


def test_declared_charset_is_respected(client, transport) -> None:  # noqa: ANN001
    raw = make_response(200, "", {"Content-Type": "text/plain; charset=ISO-8859-1"})
    raw._content = "café".encode("latin-1")  # noqa: SLF001
    raw.encoding = "ISO-8859-1"
    transport.queue("GET", "/-/test-counters", raw)

    response = client.get(f"{ORIGIN}/-/test-counters")

    assert response.body_text == "café"
