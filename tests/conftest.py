# tests/conftest.py
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from icb_core.config import IcbConfig
from icb_core.exceptions import ConnectionClosedError
from icb_core.protocols.codec import decode_command, encode_message
from icb_core.protocols.framing import encode_packet, read_packet


@pytest.fixture
def valid_config():
    """
    [Fixture] 返回一个指向本机的最小 IcbConfig 对象。
    超时设置得较短，避免异常路径拖慢测试。
    """
    return IcbConfig(
        host="127.0.0.1",
        nickname="tester",
        port=7326,
        group="1",
        connect_timeout=2.0,
        login_timeout=2.0,
    )


@pytest.fixture
def make_config(valid_config):
    """[Fixture] 基于 valid_config 生成指向指定端口的配置。"""

    def _make(port: int, **overrides) -> IcbConfig:
        return replace(valid_config, port=port, **overrides)

    return _make


class FakePeer:
    """模拟服务器一侧的单个连接。"""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer

    async def send(self, message) -> None:
        await self.send_raw(encode_packet(encode_message(message)))

    async def send_raw(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def recv(self, timeout: float = 2.0):
        packet = await asyncio.wait_for(read_packet(self.reader), timeout)
        return decode_command(packet)

    async def recv_until_eof(self, timeout: float = 3.0) -> list:
        """读取客户端的全部命令，直到客户端关闭连接。"""
        commands = []

        async def _drain():
            while True:
                try:
                    commands.append(decode_command(await read_packet(self.reader)))
                except ConnectionClosedError:
                    return

        await asyncio.wait_for(_drain(), timeout)
        return commands

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError:
            pass


class FakeIcbServer:
    """进程内的 ICB 服务器替身。

    每个连接都交给 handler(peer) 处理；handler 返回即关闭连接。
    handler 中的断言失败会在退出 async with 时重新抛出。
    """

    def __init__(self, handler):
        self.handler = handler
        self.port = 0
        self.errors: list[BaseException] = []
        self._tasks: set[asyncio.Task] = set()
        self._server: asyncio.AbstractServer | None = None

    async def __aenter__(self):
        self._server = await asyncio.start_server(self._on_client, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

        self._server.close()
        await self._server.wait_closed()

        if exc_type is None and self.errors:
            raise self.errors[0]

    async def _on_client(self, reader, writer):
        self._tasks.add(asyncio.current_task())
        peer = FakePeer(reader, writer)
        try:
            await self.handler(peer)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            self.errors.append(e)
        finally:
            await peer.close()


@pytest.fixture
def icb_server():
    """[Fixture] 返回 FakeIcbServer 构造器，配合 async with 使用。"""
    return FakeIcbServer
