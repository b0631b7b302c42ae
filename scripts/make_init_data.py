#!/usr/bin/env python3
"""
Генерация подписанных initData для локальной разработки.

Использование:
    python scripts/make_init_data.py --user-id 123 --first-name Alice
    python scripts/make_init_data.py --user-id 123 --login --base-url http://localhost:3000

Переменные окружения:
    BOT_TOKEN        — токен бота (тот же, что у сервера)
    MINIAPP_API_URL  — базовый URL (по умолчанию http://localhost:3000)
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import time
from pathlib import Path

# Пакеты могут быть установлены через pip или лежать рядом
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "api"))
sys.path.insert(0, str(ROOT / "sdk"))

from miniapp_api.telegram import sign_init_data  # noqa: E402
from miniapp_client import MiniAppAPIError, MiniAppClient  # noqa: E402


def build(args: argparse.Namespace, bot_token: str) -> str:
    user = {"id": args.user_id, "first_name": args.first_name}
    if args.username:
        user["username"] = args.username
    if args.language_code:
        user["language_code"] = args.language_code
    if args.premium:
        user["is_premium"] = True

    fields: dict[str, object] = {
        "auth_date": int(time.time()) - args.age,
        "query_id": args.query_id,
        "user": user,
    }
    if args.start_param:
        fields["start_param"] = args.start_param
    return sign_init_data(fields, bot_token)


async def login(base_url: str, init_data: str) -> int:
    async with MiniAppClient(base_url) as api:
        try:
            user = await api.login(init_data)
            print(f"Вход выполнен: id={user['id']} telegramId={user['telegramId']}")
            print(f"Token: {api.token}")
            profile = await api.profile()
            print(f"Профиль: {profile}")
        except MiniAppAPIError as e:
            print(f"Ошибка: {e}")
            return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Signed Telegram initData for local testing")
    parser.add_argument("--bot-token", default=os.getenv("BOT_TOKEN", ""))
    parser.add_argument("--user-id", type=int, default=100000001)
    parser.add_argument("--first-name", default="Dev")
    parser.add_argument("--username", default="dev_user")
    parser.add_argument("--language-code", default="en")
    parser.add_argument("--premium", action="store_true")
    parser.add_argument("--query-id", default="AAHdF6IQAAAAAN0XohDhrOrc")
    parser.add_argument("--start-param", default="")
    parser.add_argument("--age", type=int, default=0, help="Возраст auth_date в секундах")
    parser.add_argument("--login", action="store_true", help="Сразу войти через SDK")
    parser.add_argument("--base-url", default=os.getenv("MINIAPP_API_URL", "http://localhost:3000"))
    args = parser.parse_args()

    if not args.bot_token:
        parser.error("BOT_TOKEN не задан (--bot-token или переменная окружения)")

    init_data = build(args, args.bot_token)
    print(init_data)

    if args.login:
        return asyncio.run(login(args.base_url, init_data))
    return 0


if __name__ == "__main__":
    sys.exit(main())
