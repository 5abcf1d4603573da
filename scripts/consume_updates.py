#!/usr/bin/env python3
"""Consome updates do Telegram via long polling e imprime um resumo.

Uso:
    TELEGRAM_BOT_TOKEN=... python scripts/consume_updates.py --max-updates 10
    python scripts/consume_updates.py --config config.yaml --preset development
    python scripts/consume_updates.py --webhook-info

Nunca imprime o conteúdo das mensagens, apenas update_id e tipo.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from app.bootstrap import initialize_app  # noqa: E402
from app.bootstrap.receiver import TelegramReceiver  # noqa: E402
from config.settings import (  # noqa: E402
    development_preset,
    load_telegram_settings,
    production_preset,
)

PRESETS = {
    "production": production_preset,
    "development": development_preset,
}


# Intervalo entre verificações de saúde enquanto não chegam updates
HEALTH_CHECK_INTERVAL_SECONDS = 5.0


async def consume(
    receiver: TelegramReceiver,
    max_updates: int,
    health_interval: float = HEALTH_CHECK_INTERVAL_SECONDS,
) -> tuple[int, bool]:
    """Imprime updates até max_updates ou até o receiver ficar unhealthy.

    Returns:
        (updates recebidos, receiver saudável ao sair)
    """
    received = 0
    try:
        await receiver.start()
        while max_updates <= 0 or received < max_updates:
            try:
                update = await asyncio.wait_for(receiver.updates.get(), timeout=health_interval)
            except TimeoutError:
                update = None
            if update is not None:
                received += 1
                print(f"update_id={update.update_id} kind={update.kind or 'unsupported'}")
            if not receiver.is_healthy():
                print("receiver unhealthy, stopping", file=sys.stderr)
                return received, False
    finally:
        await receiver.aclose()
    return received, True


async def show_webhook_info(receiver: TelegramReceiver) -> None:
    try:
        info = await receiver.bot_api.get_webhook_info()
    finally:
        await receiver.aclose()
    print(
        f"url={info.url or '-'} pending_update_count={info.pending_update_count} "
        f"last_error_message={info.last_error_message or '-'}"
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        default=None,
        help="Arquivo YAML de configuracao (env e flags tem precedencia).",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default=None,
        help="Ajusta retries, breaker e timeouts para o ambiente.",
    )
    parser.add_argument(
        "--max-updates",
        type=int,
        default=0,
        help="Encerra depois de N updates (0 = sem limite).",
    )
    parser.add_argument(
        "--webhook-info",
        action="store_true",
        help="Apenas consulta getWebhookInfo e sai.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = load_telegram_settings(args.config, mode="polling")
    if args.preset:
        settings = PRESETS[args.preset](settings)

    initialize_app(settings)
    receiver = TelegramReceiver(settings)

    if args.webhook_info:
        asyncio.run(show_webhook_info(receiver))
        return

    try:
        received, healthy = asyncio.run(consume(receiver, args.max_updates))
    except KeyboardInterrupt:
        return
    print(f"[polling] received={received}")
    if not healthy:
        sys.exit(1)


if __name__ == "__main__":
    main()
