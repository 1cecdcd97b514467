#!/usr/bin/env python3
"""
中興大學 iLearning 登入助手 - NCHU iLearning Login Helper

執行後輸入帳號密碼，程式會自動辨識驗證碼並登入 iLearning。
登入成功後帳號密碼會儲存在本機，MCP 服務即可用來更新作業清單。

Run this tool, enter your account and password; the captcha is solved automatically.
After a successful login the credentials are saved locally for the MCP server to use.
"""

import asyncio
import getpass
import sys

from ilearning.config import CREDENTIALS_FILE
from ilearning.errors import LMSError
from ilearning.schemas.login import Authenticated
from ilearning.services.login_service import LoginService
from ilearning.utils.logger import configure_logging


async def main() -> int:
    print()
    print("=" * 50)
    print("   中興大學 iLearning 登入助手 - Login Helper")
    print("=" * 50)
    print()

    account = input("帳號 (學號): ").strip()
    password = getpass.getpass("密碼: ")
    if not account or not password:
        print("❌ 帳號與密碼不可為空")
        return 1

    print()
    print("⏳ 正在登入 (自動辨識驗證碼)...")

    async with LoginService() as service:
        try:
            outcome = await service.login(account, password)
        except LMSError as exc:
            print(f"❌ 登入失敗: {exc.message}")
            return 1

        if not isinstance(outcome, Authenticated):
            print(f"❌ {outcome.message}")
            return 1

        service.save_credentials(account, password)
        print(f"🎉 {outcome.message}")
        print(f"✅ 帳號密碼已儲存到 {CREDENTIALS_FILE}")
        print()

        try:
            result = await service.get_dashboard_last_event()
        except LMSError as exc:
            print(f"⚠️ 無法取得最新事件: {exc.message}")
            return 0

    if not result.success:
        print("⚠️ 無法解析最新事件")
        return 0
    if not result.events:
        print("📭 目前沒有待辦事件")
        return 0

    print(f"📋 最新事件 ({len(result.events)}):")
    for event in result.events:
        print(f"   - [{event.source}] {event.title}")
        print(f"     截止: {event.deadline}")
        print(f"     {event.title_link}")
    print()
    return 0


if __name__ == "__main__":
    configure_logging()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n已取消")
        sys.exit(130)
