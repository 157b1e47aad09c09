# File: src/icb_core/session.py
"""
ICB 会话 (Session)

职责：
1. 握手：发送登录包 -> 等待登录成功 / 拒绝。
2. 运行：启动两个 Pump，并根据它们的退出结果驱动状态机。
3. 生命周期：CONNECTING -> AWAITING_LOGIN_ACK -> CONNECTED -> CLOSING -> CLOSED。

会话状态只由本类写入。Pump 通过 run() 的返回值报告结果，不直接改动状态。
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from .config import IcbConfig
from .exceptions import IcbError, LoginError, NetworkError, StateError
from .network import NetworkClient
from .protocols.codec import decode_message, encode_command
from .protocols.commands import Command, Exit, Login, Pong
from .protocols.framing import read_packet, write_packet
from .protocols.messages import (
    Closed,
    ErrorMessage,
    ExitMessage,
    LoginOk,
    Message,
    PingMessage,
    ProtocolInfo,
)
from .pumps import InboundPump, OutboundPump
from .state import IcbState, SessionStatus

logger = logging.getLogger(__name__)

# 定义回调函数类型别名：支持同步或异步函数
StatusCallback = Callable[[SessionStatus, str], Any | Awaitable[Any]]


class Session:
    """ICB 连接的状态机与运行驱动。

    由 init() 创建并完成握手；调用方在自己的事件循环中 await run() 来真正收发数据。
    """

    def __init__(self, config: IcbConfig, net_client: NetworkClient) -> None:
        """初始化会话。

        Args:
            config: 全局配置对象。
            net_client: 已建立连接的网络客户端。
        """
        self.config = config
        self.net_client = net_client

        self.inbound: asyncio.Queue[Message] = asyncio.Queue()
        self.outbound: asyncio.Queue[Command] = asyncio.Queue()

        self._state = IcbState()
        self._listeners: list[StatusCallback] = []
        self._buffered: list[Message] = []
        self._running = False
        self._closed_before_run = False
        self._finished = asyncio.Event()

    @property
    def state(self) -> IcbState:
        """获取当前会话状态的只读副本。"""
        return replace(self._state, history=list(self._state.history))

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def accepts_commands(self) -> bool:
        """是否仍接受新的命令 (CLOSING / CLOSED 之后拒绝)。"""
        return self._state.is_open

    def add_listener(self, callback: StatusCallback) -> None:
        """注册状态变更监听器。"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        """移除状态变更监听器。"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    # =========================================================================
    # 握手
    # =========================================================================

    async def handshake(self) -> None:
        """执行登录握手。

        登录包是连接上的第一个客户端数据包，发送时两个 Pump 都尚未启动。
        握手期间收到的其他消息会被缓存，登录成功后紧随 LoginOk 交给消费者。

        Raises:
            LoginError: 服务器拒绝登录、握手超时，或握手期间连接中断。
            StateError: 会话不处于初始状态。
        """
        if self._state.status is not SessionStatus.DISCONNECTED:
            raise StateError(f"无法在 {self._state.status.name} 状态下握手")

        reader, writer = self.net_client.streams()
        self._update_status(SessionStatus.CONNECTING, "正在发送登录包...")

        login = Login(
            nickname=self.config.nickname,
            group=self.config.group,
            password=self.config.password,
            login_id=self.config.login_id,
        )

        try:
            await write_packet(writer, encode_command(login, self.config.encoding))
            self._update_status(SessionStatus.AWAITING_LOGIN_ACK, "等待登录响应...")
            await asyncio.wait_for(
                self._await_login_ack(reader, writer), timeout=self.config.login_timeout
            )

        except asyncio.TimeoutError:
            await self._abort(f"等待登录响应超时 ({self.config.login_timeout}s)")
            raise LoginError(
                f"等待登录响应超时 ({self.config.login_timeout}s)"
            ) from None

        except LoginError as le:
            await self._abort(f"登录被拒绝: {le}")
            raise

        except IcbError as e:
            await self._abort(f"握手异常: {e}")
            raise LoginError(f"握手期间连接中断: {e}") from e

        self._update_status(SessionStatus.CONNECTED, "登录成功")

        self.inbound.put_nowait(LoginOk())
        for message in self._buffered:
            self.inbound.put_nowait(message)
        self._buffered.clear()

    async def _await_login_ack(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """读取数据包直到登录成功。

        Raises:
            LoginError: 收到 Error / Exit 包。
            NetworkError: 连接中断。
            ProtocolError: 收到损坏的数据包。
        """
        while True:
            message = decode_message(await read_packet(reader), self.config.encoding)

            if isinstance(message, LoginOk):
                return

            if isinstance(message, ErrorMessage):
                raise LoginError(f"服务器拒绝登录: {message.text}", message.text)

            if isinstance(message, ExitMessage):
                raise LoginError("服务器在登录完成前要求断开")

            if isinstance(message, PingMessage):
                pong = Pong(message_id=message.message_id)
                await write_packet(writer, encode_command(pong, self.config.encoding))
                self._state.pings_answered += 1
                if not self.config.surface_pings:
                    continue

            if isinstance(message, ProtocolInfo):
                self._state.protocol = message
                logger.info(
                    f"服务器协议: level={message.level} host={message.host_id} "
                    f"server={message.server_id}"
                )

            self._buffered.append(message)

    # =========================================================================
    # 运行
    # =========================================================================

    async def run(self) -> SessionStatus:
        """驱动两个 Pump 直到会话关闭。

        任何一个 Pump 退出都会结束整个会话；两个 Pump 都退出后，
        向 inbound 队列推入唯一的终止事件 Closed。

        Returns:
            SessionStatus: 终态 (CLOSED)。如果会话已被 close() 提前关闭，立即返回。

        Raises:
            StateError: 重复调用，或会话未完成握手。
        """
        if self._closed_before_run:
            # close() 抢在 run() 之前关闭了会话
            await self._finished.wait()
            return self._state.status
        if self._running or self._finished.is_set():
            raise StateError("Session.run() 只能调用一次")
        if self._state.status not in (SessionStatus.CONNECTED, SessionStatus.CLOSING):
            raise StateError(f"无法在 {self._state.status.name} 状态下运行会话")

        self._running = True
        reader, writer = self.net_client.streams()

        inbound = InboundPump(
            reader,
            self.inbound,
            self.outbound,
            encoding=self.config.encoding,
            surface_pings=self.config.surface_pings,
        )
        outbound = OutboundPump(writer, self.outbound, encoding=self.config.encoding)

        in_task = asyncio.create_task(inbound.run(), name="icb-inbound")
        out_task = asyncio.create_task(outbound.run(), name="icb-outbound")

        closed = Closed(reason="会话被取消")
        try:
            done, _ = await asyncio.wait(
                {in_task, out_task}, return_when=asyncio.FIRST_COMPLETED
            )

            if out_task in done:
                closed = await self._finish_outbound(out_task.result(), in_task)
            else:
                closed = await self._finish_inbound(in_task.result(), out_task)

        finally:
            for task in (in_task, out_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(in_task, out_task, return_exceptions=True)
            await self.net_client.close()

            self._state.pings_answered += inbound.pings_answered
            if closed.error is not None:
                self._state.last_error = str(closed.error)
            self._update_status(SessionStatus.CLOSED, closed.reason)

            # 两个 Pump 都已退出，此后本方法是 inbound 队列的唯一写者
            self.inbound.put_nowait(closed)
            self._running = False
            self._finished.set()

        logger.info(
            f"会话结束: 收到 {inbound.messages_received} 条消息, "
            f"发送 {outbound.commands_sent} 条命令"
        )
        return self._state.status

    async def _finish_outbound(
        self, error: NetworkError | None, in_task: "asyncio.Task[IcbError]"
    ) -> Closed:
        """Outbound Pump 先退出：Exit 正常关闭，或写入失败。"""
        if error is None:
            self._update_status(SessionStatus.CLOSING, "客户端请求关闭")
            # 关闭连接使读半部收到 EOF，Inbound Pump 随之退出
            await self.net_client.close()
            await in_task
            return Closed(reason="客户端已关闭连接")

        self._update_status(SessionStatus.CLOSING, f"写入失败: {error}")
        in_task.cancel()
        return Closed(reason=f"写入失败: {error}", error=error)

    async def _finish_inbound(
        self, error: IcbError, out_task: "asyncio.Task[NetworkError | None]"
    ) -> Closed:
        """Inbound Pump 先退出：对端关闭连接，或读/解码失败。尚未发送的命令被丢弃。"""
        self._update_status(SessionStatus.CLOSING, f"读取结束: {error}")
        out_task.cancel()

        dropped = self.outbound.qsize()
        if dropped:
            logger.warning(f"连接已断开，丢弃 {dropped} 条未发送的命令")

        if isinstance(error, NetworkError):
            logger.warning(f"连接中断: {error}")
        else:
            logger.error(f"协议错误，会话关闭: {error}")
        return Closed(reason=str(error), error=error)

    # =========================================================================
    # 关闭
    # =========================================================================

    def request_close(self) -> None:
        """请求关闭会话：排队一个 Exit，此前排队的命令仍会发出。重复调用无副作用。"""
        if not self._state.is_open:
            return
        self.outbound.put_nowait(Exit())
        self._update_status(SessionStatus.CLOSING, "已请求关闭")

    async def close(self) -> None:
        """关闭会话并等待其结束。

        如果 run() 正在运行，则排队 Exit 并等待 run() 返回；
        如果 run() 从未启动，直接关闭连接并推入 Closed。
        """
        if self._finished.is_set():
            return

        if self._running:
            self.request_close()
            await self._finished.wait()
            return

        if self._closed_before_run:
            await self._finished.wait()
            return

        self._closed_before_run = True
        self._update_status(SessionStatus.CLOSING, "关闭未运行的会话")
        await self.net_client.close()
        self._update_status(SessionStatus.CLOSED, "会话已关闭")
        self.inbound.put_nowait(Closed(reason="会话在运行前被关闭"))
        self._finished.set()

    async def wait_closed(self) -> None:
        """等待会话到达 CLOSED。"""
        await self._finished.wait()

    async def _abort(self, reason: str) -> None:
        """握手失败：关闭连接并直接进入 CLOSED (不经过 Pump)。"""
        self._state.last_error = reason
        await self.net_client.close()
        self._update_status(SessionStatus.CLOSED, reason)
        self._finished.set()

    def _update_status(self, status: SessionStatus, msg: str) -> None:
        """更新内部状态并触发所有回调。"""
        if status is self._state.status:
            return

        self._state.status = status
        self._state.history.append(status)
        logger.info(f"[{status.name}] {msg}")

        for callback in self._listeners:
            try:
                if inspect.iscoroutinefunction(callback):
                    asyncio.create_task(callback(status, msg))  # type: ignore
                else:
                    loop = asyncio.get_running_loop()
                    loop.call_soon(callback, status, msg)
            except RuntimeError:
                # 事件循环尚未运行或已关闭
                pass
