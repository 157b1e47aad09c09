# src/icb_core/network.py
"""
ICB 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP 连接的建立与关闭，并把连接拆成互不重叠的读半部与写半部。
读半部交给 Inbound Pump，写半部交给 Outbound Pump。
"""

import asyncio
import logging
import socket
from typing import Optional

from .config import IcbConfig
from .exceptions import ConnectError, NetworkError, ResolveError

logger = logging.getLogger(__name__)


class NetworkClient:
    """
    封装 asyncio TCP 流的客户端。
    """

    def __init__(self, config: IcbConfig):
        self.config = config
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def is_connected(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self) -> None:
        """
        建立到 host:port 的 TCP 连接。

        Raises:
            ResolveError: 主机名解析失败。
            ConnectError: 连接被拒绝、不可达或超时。
        """
        target = (self.config.host, self.config.port)

        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(*target),
                timeout=self.config.connect_timeout,
            )
        except socket.gaierror as e:
            raise ResolveError(f"无法解析主机 {self.config.host}: {e}") from e
        except asyncio.TimeoutError:
            raise ConnectError(
                f"连接 {target[0]}:{target[1]} 超时 ({self.config.connect_timeout}s)"
            ) from None
        except OSError as e:
            raise ConnectError(f"无法连接 {target[0]}:{target[1]}: {e}") from e

        logger.debug(f"TCP 连接已建立: {target[0]}:{target[1]}")

    def streams(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """返回 (读半部, 写半部)。

        Raises:
            NetworkError: 尚未连接。
        """
        if self.reader is None or self.writer is None:
            raise NetworkError("连接尚未建立")
        return self.reader, self.writer

    async def close(self) -> None:
        """关闭连接。正在阻塞的读操作会因此返回 EOF。"""
        if self.writer is None:
            return

        writer, self.writer = self.writer, None
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            # 对端已重置连接时 wait_closed 会重新抛出同一个错误
            logger.debug(f"关闭连接时忽略错误: {e}")
        logger.debug("TCP 连接已关闭")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
