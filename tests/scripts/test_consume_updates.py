"""Testes do script de consumo via long polling."""

from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from pydantic import SecretStr

from api.connectors.telegram.errors import TelegramApiError
from app.bootstrap import TelegramReceiver
from config.settings.telegram import TelegramSettings
from tests.fakes.fake_bot_api import FakeBotApi, updates_body

VALID_TOKEN = "123456789:" + "A" * 35
SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "consume_updates.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("consume_updates", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


consume_updates = _load_script()


def _receiver(bot_api: FakeBotApi, **overrides) -> TelegramReceiver:
    settings = TelegramSettings(
        bot_token=SecretStr(VALID_TOKEN),
        mode="polling",
        drain_delay_seconds=0.0,
        polling_timeout=0,
        retry_initial_delay=0.001,
        retry_max_delay=0.002,
        **overrides,
    )
    return TelegramReceiver(settings, bot_api=bot_api)


@pytest.mark.asyncio
async def test_consume_stops_after_max_updates() -> None:
    receiver = _receiver(FakeBotApi([updates_body(1, 2, 3)]))

    received, healthy = await consume_updates.consume(receiver, 2, health_interval=0.01)

    assert (received, healthy) == (2, True)
    assert not receiver.is_healthy()


@pytest.mark.asyncio
async def test_consume_returns_when_polling_stops_for_good() -> None:
    bot_api = FakeBotApi(fail_always=True)
    receiver = _receiver(bot_api, polling_max_errors=3)

    received, healthy = await consume_updates.consume(receiver, 0, health_interval=0.01)

    assert (received, healthy) == (0, False)
    assert len(bot_api.offsets) == 3


@pytest.mark.asyncio
async def test_consume_closes_receiver_when_start_fails() -> None:
    bot_api = FakeBotApi()
    bot_api.delete_webhook_error = TelegramApiError(401, "Unauthorized")
    receiver = _receiver(bot_api, polling_delete_webhook=True)
    closed: list[bool] = []
    original_aclose = receiver.aclose

    async def tracking_aclose(timeout: float | None = None) -> None:
        closed.append(True)
        await original_aclose(timeout=timeout)

    receiver.aclose = tracking_aclose  # type: ignore[method-assign]

    with pytest.raises(TelegramApiError):
        await consume_updates.consume(receiver, 1, health_interval=0.01)

    assert closed == [True]
