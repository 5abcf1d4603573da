"""Testes do endpoint de webhook Telegram."""

from __future__ import annotations

import asyncio
import json

import pytest
from starlette.requests import Request

from api.connectors.telegram.security import SECRET_TOKEN_HEADER
from api.routes.telegram.webhook import (
    WEBHOOK_PATH,
    TelegramWebhookHandler,
    create_telegram_router,
)
from app.infra.resilience import CircuitState, TokenBucket
from app.infra.update_sink import UpdateSink

DOMAIN = "bot.example.com"
SECRET = "s3cret"

MESSAGE_BODY = json.dumps(
    {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "chat": {"id": 10, "type": "private"},
            "from": {"id": 5, "first_name": "A"},
            "date": 0,
            "text": "hi",
        },
    }
).encode("utf-8")


def _build_request(
    *,
    method: str = "POST",
    body: bytes = MESSAGE_BODY,
    chunks: list[bytes] | None = None,
    headers: dict[str, str] | None = None,
    disconnect: bool = False,
    stall: bool = False,
) -> Request:
    header_items = {"host": DOMAIN, SECRET_TOKEN_HEADER: SECRET}
    header_items.update(headers or {})
    raw_headers = [(k.lower().encode("utf-8"), v.encode("utf-8")) for k, v in header_items.items()]
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": WEBHOOK_PATH,
        "raw_path": WEBHOOK_PATH.encode("utf-8"),
        "query_string": b"",
        "headers": raw_headers,
    }
    pending = list(chunks if chunks is not None else [body])

    async def _receive() -> dict[str, object]:
        if disconnect:
            return {"type": "http.disconnect"}
        if stall:
            await asyncio.Event().wait()
        if not pending:
            return {"type": "http.request", "body": b"", "more_body": False}
        chunk = pending.pop(0)
        return {"type": "http.request", "body": chunk, "more_body": bool(pending)}

    return Request(scope, _receive)


def _handler(sink: UpdateSink | None = None, **kwargs) -> TelegramWebhookHandler:
    params = {"secret_token": SECRET, "allowed_domain": DOMAIN}
    params.update(kwargs)
    return TelegramWebhookHandler(sink or UpdateSink(10), **params)


@pytest.mark.asyncio
async def test_valid_update_is_delivered_to_sink() -> None:
    sink = UpdateSink(10)
    handler = _handler(sink)

    response = await handler.handle(_build_request())

    assert response.status_code == 200
    assert response.body == b""
    update = sink.get_nowait()
    assert update.update_id == 1
    assert update.message is not None
    assert update.message.text == "hi"
    assert update.message.from_user is not None
    assert update.message.from_user.first_name == "A"


@pytest.mark.parametrize(
    ("host", "secret", "method", "expected"),
    [
        (DOMAIN, SECRET, "POST", 200),
        (f"{DOMAIN}:8443", SECRET, "POST", 200),
        ("evil.example.com", SECRET, "POST", 403),
        ("evil.example.com", "wrong", "GET", 403),
        (DOMAIN, "wrong", "POST", 401),
        (DOMAIN, "wrong", "GET", 401),
        (DOMAIN, SECRET, "GET", 405),
        (DOMAIN, SECRET, "PUT", 405),
    ],
)
@pytest.mark.asyncio
async def test_check_order_host_secret_method(
    host: str, secret: str, method: str, expected: int
) -> None:
    sink = UpdateSink(10)
    handler = _handler(sink)

    response = await handler.handle(
        _build_request(method=method, headers={"host": host, SECRET_TOKEN_HEADER: secret})
    )

    assert response.status_code == expected
    assert sink.qsize() == (1 if expected == 200 else 0)


@pytest.mark.asyncio
async def test_checks_disabled_when_not_configured() -> None:
    handler = _handler(secret_token="", allowed_domain="")

    response = await handler.handle(_build_request(headers={"host": "anything"}))

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_rejection_body_is_plain_text() -> None:
    response = await _handler().handle(_build_request(method="GET"))

    assert response.status_code == 405
    assert response.body == b"method not allowed"
    assert response.media_type == "text/plain"


@pytest.mark.asyncio
async def test_declared_content_length_over_limit_is_413() -> None:
    handler = _handler(max_body_size=64)

    response = await handler.handle(_build_request(headers={"content-length": "65"}))

    assert response.status_code == 413


@pytest.mark.asyncio
async def test_streamed_body_over_limit_is_413() -> None:
    handler = _handler(max_body_size=64)

    response = await handler.handle(_build_request(chunks=[b"x" * 40, b"y" * 40]))

    assert response.status_code == 413
    assert handler.buffer_pool.in_use == 0


@pytest.mark.asyncio
async def test_body_split_in_chunks_is_reassembled() -> None:
    sink = UpdateSink(10)
    handler = _handler(sink)

    response = await handler.handle(
        _build_request(chunks=[MESSAGE_BODY[:10], MESSAGE_BODY[10:30], MESSAGE_BODY[30:]])
    )

    assert response.status_code == 200
    assert sink.get_nowait().update_id == 1


@pytest.mark.parametrize(
    "body",
    [b"not json", b"[]", b'{"update_id": "abc"}', b'{"message": {}}'],
)
@pytest.mark.asyncio
async def test_invalid_payload_is_400(body: bytes) -> None:
    sink = UpdateSink(10)

    response = await _handler(sink).handle(_build_request(body=body))

    assert response.status_code == 400
    assert sink.empty()


@pytest.mark.asyncio
async def test_invalid_content_length_is_400() -> None:
    response = await _handler().handle(_build_request(headers={"content-length": "abc"}))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_client_disconnect_is_400() -> None:
    handler = _handler()

    response = await handler.handle(_build_request(disconnect=True))

    assert response.status_code == 400
    assert handler.buffer_pool.in_use == 0


@pytest.mark.asyncio
async def test_full_sink_is_503() -> None:
    sink = UpdateSink(1)
    handler = _handler(sink)

    first = await handler.handle(_build_request())
    second = await handler.handle(_build_request())

    assert first.status_code == 200
    assert second.status_code == 503
    assert second.body == b"updates channel blocked"
    assert sink.qsize() == 1


@pytest.mark.asyncio
async def test_repeated_saturation_opens_breaker() -> None:
    sink = UpdateSink(1)
    sink.offer(object())  # type: ignore[arg-type]
    handler = _handler(sink)

    responses = [await handler.handle(_build_request()) for _ in range(4)]

    assert [response.status_code for response in responses] == [503, 503, 503, 500]
    assert responses[-1].body == b"service unavailable"
    assert handler.breaker.state is CircuitState.OPEN


@pytest.mark.asyncio
async def test_client_rejections_do_not_open_breaker() -> None:
    handler = _handler()

    for _ in range(5):
        response = await handler.handle(_build_request(headers={SECRET_TOKEN_HEADER: "wrong"}))
        assert response.status_code == 401

    assert handler.breaker.state is CircuitState.CLOSED
    assert (await handler.handle(_build_request())).status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_rejects_before_breaker() -> None:
    burst = 3
    handler = _handler(rate_limiter=TokenBucket(rate_per_second=0.0, burst=burst))

    statuses = [(await handler.handle(_build_request())).status_code for _ in range(burst + 1)]

    assert statuses == [200, 200, 200, 429]
    assert handler.breaker.counts.requests == burst


@pytest.mark.asyncio
async def test_buffer_is_returned_to_pool() -> None:
    handler = _handler()

    await handler.handle(_build_request())
    await handler.handle(_build_request(body=b"not json"))

    assert handler.buffer_pool.in_use == 0
    assert handler.buffer_pool.idle_count == 1


@pytest.mark.asyncio
async def test_unexpected_error_is_500() -> None:
    class BrokenSink(UpdateSink):
        def offer(self, update):
            raise RuntimeError("boom")

    response = await _handler(BrokenSink(1)).handle(_build_request())

    assert response.status_code == 500


def test_router_registers_webhook_path_for_all_methods() -> None:
    router = create_telegram_router(_handler())

    route = router.routes[0]
    assert route.path == WEBHOOK_PATH
    assert {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"} <= route.methods


@pytest.mark.asyncio
async def test_stalled_body_read_times_out_with_400() -> None:
    handler = _handler(read_timeout=0.02)

    response = await asyncio.wait_for(handler.handle(_build_request(stall=True)), timeout=1.0)

    assert response.status_code == 400
    assert handler.buffer_pool.in_use == 0
    assert handler.breaker.state is CircuitState.CLOSED
