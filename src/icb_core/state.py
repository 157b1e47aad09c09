# File: src/icb_core/state.py
"""
ICB 核心库 - 状态模块

定义会话的生命周期状态与易变的会话数据。
本模块不包含业务逻辑；状态只由 Session 写入，Pump 只读。
"""

from dataclasses import dataclass, field
from enum import Enum, auto

from .protocols.messages import ProtocolInfo


class SessionStatus(Enum):
    """会话的生命周期状态枚举。

    状态流转示意:
    DISCONNECTED -> CONNECTING -> AWAITING_LOGIN_ACK -> CONNECTED -> CLOSING -> CLOSED
                        |                 |                 |
                        v                 v                 v
                      CLOSED            CLOSED            CLOSED
    """

    DISCONNECTED = auto()
    """初始状态，尚未建立 TCP 连接。"""

    CONNECTING = auto()
    """TCP 已连接，正在发送登录包。"""

    AWAITING_LOGIN_ACK = auto()
    """登录包已发出，等待服务器的登录成功或错误响应。"""

    CONNECTED = auto()
    """登录成功，两个 Pump 正在交换数据。"""

    CLOSING = auto()
    """正在关闭：写半部已关闭，等待读半部退出。"""

    CLOSED = auto()
    """终态。任何 I/O 失败、登录拒绝或主动关闭都会到达这里。"""


@dataclass
class IcbState:
    """存储 ICB 会话的易变状态数据。

    该对象是非持久化的；每次 init 都会创建新的实例。

    Attributes:
        status: 当前会话状态。
        last_error: 最近一次导致关闭的错误描述，用于 UI 显示。
        protocol: 服务器在连接时发送的协议横幅。
        pings_answered: 已自动应答的 Ping 数量。
        history: 状态流转记录 (按发生顺序)。
    """

    status: SessionStatus = SessionStatus.DISCONNECTED
    last_error: str = ""
    protocol: ProtocolInfo | None = None
    pings_answered: int = 0
    history: list[SessionStatus] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        """会话是否仍可接受命令 (尚未进入 CLOSING/CLOSED)。"""
        return self.status not in (SessionStatus.CLOSING, SessionStatus.CLOSED)
