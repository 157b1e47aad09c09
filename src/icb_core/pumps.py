# src/icb_core/pumps.py
"""
ICB 核心库 - 收发泵 (Pumps)

两个独立调度的 asyncio 任务，各自独占连接的一个方向:

- InboundPump: 独占读半部。分帧 -> 解码 -> 推入 inbound 队列。
- OutboundPump: 独占写半部。从 outbound 队列取命令 -> 编码 -> 写出。

两者之间只通过两个 FIFO 队列通信，不共享任何可变会话状态。
Pump 不会修改 Session 的状态；它们以 run() 的返回值 (导致退出的异常，或 None)
向 Session 报告结果，由 Session 决定状态流转。
"""

import asyncio
import logging

from .exceptions import IcbError, NetworkError, ValidationError
from .protocols.codec import decode_message, encode_command
from .protocols.commands import Command, Exit, Pong
from .protocols.framing import read_packet, write_packet
from .protocols.messages import Message, PingMessage

logger = logging.getLogger(__name__)


class InboundPump:
    """读循环。inbound 队列的唯一写者，因此投递顺序等于线上到达顺序。"""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        inbound: "asyncio.Queue[Message]",
        outbound: "asyncio.Queue[Command]",
        encoding: str = "utf-8",
        surface_pings: bool = False,
    ) -> None:
        """初始化读循环。

        Args:
            reader: 连接的读半部。
            inbound: 交给消费者的消息队列。
            outbound: 命令队列，用于注入自动应答的 Pong。
            encoding: 文本字段编码。
            surface_pings: 为 True 时 Ping 在应答之后也推入 inbound 队列。
        """
        self.reader = reader
        self.inbound = inbound
        self.outbound = outbound
        self.encoding = encoding
        self.surface_pings = surface_pings
        self.pings_answered = 0
        self.messages_received = 0

    async def run(self) -> IcbError:
        """运行直到读或解码失败。永不重试已损坏的流。

        Returns:
            IcbError: 导致退出的错误 (对端正常关闭时为 ConnectionClosedError)。
        """
        try:
            while True:
                packet = await read_packet(self.reader)
                message = decode_message(packet, self.encoding)

                if isinstance(message, PingMessage):
                    await self.outbound.put(Pong(message_id=message.message_id))
                    self.pings_answered += 1
                    logger.debug("收到 Ping，已排队 Pong 应答")
                    if not self.surface_pings:
                        continue

                self.messages_received += 1
                await self.inbound.put(message)

        except IcbError as e:
            logger.debug(f"Inbound Pump 退出: {e!r}")
            return e


class OutboundPump:
    """写循环。连接写半部的唯一写者，命令按入队顺序写出，互不交错。"""

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        outbound: "asyncio.Queue[Command]",
        encoding: str = "utf-8",
    ) -> None:
        self.writer = writer
        self.outbound = outbound
        self.encoding = encoding
        self.commands_sent = 0

    async def run(self) -> NetworkError | None:
        """运行直到取到 Exit 或写入失败。

        编码失败的命令被记录并丢弃，循环继续；会话保持打开。

        Returns:
            NetworkError | None: 写入失败时返回该错误；因 Exit 正常退出时返回 None。
        """
        while True:
            command = await self.outbound.get()

            if isinstance(command, Exit):
                logger.debug(f"Outbound Pump 收到 Exit，已发送 {self.commands_sent} 条命令")
                return None

            try:
                packet = encode_command(command, self.encoding)
            except ValidationError as e:
                logger.warning(f"丢弃无效命令 {command!r}: {e}")
                continue

            try:
                await write_packet(self.writer, packet)
            except NetworkError as e:
                logger.error(f"写入失败，Outbound Pump 退出: {e}")
                return e

            self.commands_sent += 1
