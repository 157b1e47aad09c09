# File: src/icb_core/core.py
"""
ICB 客户端门面 (Client Facade)

职责：
1. 资源组装：Config + Network + Session。
2. 对外边界：ClientHandle 提供命令入口 (send) 与消息出口 (receive)。
3. 生命周期：connect -> handshake -> 交给调用方 await session.run()。
"""

import logging
from collections.abc import AsyncIterator

from .config import IcbConfig
from .exceptions import StateError
from .network import NetworkClient
from .protocols.codec import encode_command
from .protocols.commands import (
    Beep,
    ChangeGroup,
    ChangeNickname,
    Command,
    Exit,
    PrivateMessage,
    Say,
    UserCommand,
)
from .protocols.messages import Closed, Message
from .session import Session

logger = logging.getLogger(__name__)


class ClientHandle:
    """外部代码持有的边界对象。

    send() 只负责入队，从不阻塞在网络 I/O 上；receive() 按线上到达顺序
    产出消息，直到唯一的终止事件 Closed。
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._terminal: Closed | None = None
        self.nickname = session.config.nickname

    @property
    def closed(self) -> bool:
        """会话是否已不再接受命令。"""
        return self._terminal is not None or not self._session.accepts_commands

    @property
    def terminal_event(self) -> Closed | None:
        """消费者已经读到的终止事件 (尚未读到时为 None)。"""
        return self._terminal

    def send(self, command: Command) -> None:
        """提交一条命令 (非阻塞)。

        命令会先在本地完成编码校验，无效命令直接抛给调用方，不会进入队列。

        Args:
            command: 任意 Command；Exit 等价于 close()。

        Raises:
            ValidationError: 命令字段违反线上约束。
            StateError: 会话已关闭或正在关闭。
        """
        if self.closed:
            raise StateError("会话已关闭，无法发送命令")

        if isinstance(command, Exit):
            self.close()
            return

        encode_command(command, self._session.config.encoding)
        self._session.outbound.put_nowait(command)
        logger.debug(f"命令已入队: {command!r}")

    def say(self, text: str) -> None:
        self.send(Say(text=text))

    def private_message(self, target: str, text: str) -> None:
        self.send(PrivateMessage(target=target, text=text))

    def change_nickname(self, name: str) -> None:
        self.send(ChangeNickname(name=name))

    def change_group(self, name: str) -> None:
        self.send(ChangeGroup(name=name))

    def beep(self, target: str) -> None:
        self.send(Beep(target=target))

    def command(self, command: str, args: str = "") -> None:
        self.send(UserCommand(command=command, args=args))

    def close(self) -> None:
        """请求关闭：此前提交的命令发送完毕后断开。重复调用无副作用。"""
        self._session.request_close()

    async def receive(self) -> AsyncIterator[Message]:
        """按到达顺序产出消息，最后产出 Closed 并结束。

        可以多次调用以重新开始迭代 (共享同一个队列)；
        一旦终止事件已被读出，后续调用立即结束，不再产出任何消息。
        """
        while self._terminal is None:
            message = await self._session.inbound.get()
            if isinstance(message, Closed):
                self._terminal = message
            yield message

    def __aiter__(self) -> AsyncIterator[Message]:
        return self.receive()


async def init(config: IcbConfig) -> tuple[ClientHandle, Session]:
    """建立连接并完成登录握手。

    外部调用必须使用 await init(config)，随后在自己的任务中 await session.run()。

    Args:
        config: 配置对象。

    Returns:
        tuple[ClientHandle, Session]: 命令/消息边界对象与会话驱动。

    Raises:
        ResolveError: 主机名解析失败。
        ConnectError: TCP 连接失败或超时。
        LoginError: 服务器拒绝登录或握手失败。
    """
    logger.info(f"正在连接 {config.host}:{config.port} (nickname={config.nickname})")

    net_client = NetworkClient(config)
    await net_client.connect()

    session = Session(config, net_client)
    await session.handshake()

    return ClientHandle(session), session
