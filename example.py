# example.py
"""
这是一个 icb-core API 的最小示例：回声机器人。

它登录到 ICB 服务器，把收到的每条私聊原样回复给发送者，
直到服务器断开或按下 Ctrl+C。

运行此示例：
1. 在根目录创建 .env 文件 (至少包含 ICB_HOST 与 ICB_NICKNAME)。
2. 安装依赖： pip install -e .
3. 从项目根目录运行： python example.py
"""

import asyncio
import logging
import sys
from pathlib import Path

from icb_core import (
    IcbError,
    PersonalMessage,
    StatusMessage,
    init,
    load_config_from_env,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("IcbEchoBot")


async def main() -> int:
    env_file = Path(".env")
    config = load_config_from_env(env_file if env_file.exists() else None)

    try:
        handle, session = await init(config)
    except IcbError as e:
        logger.error(f"连接失败: {e}")
        return 1

    run_task = asyncio.create_task(session.run())

    try:
        async for message in handle:
            if isinstance(message, PersonalMessage):
                logger.info(f"<{message.sender}> {message.text}")
                try:
                    handle.private_message(message.sender, message.text)
                except IcbError as e:
                    logger.warning(f"无法回复 {message.sender}: {e}")
            elif isinstance(message, StatusMessage):
                logger.info(f"[{message.category}] {message.text}")
    finally:
        await session.close()
        await run_task

    closed = handle.terminal_event
    if closed is not None and closed.is_error:
        logger.error(f"会话异常结束: {closed.reason}")
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("收到用户中断信号 (Ctrl+C)，退出。")
