# src/icb_core/protocols/messages.py
"""
服务器 -> 客户端的语义事件 (Messages)

所有消息都是不可变的值对象 (frozen dataclass)，由 Codec 根据数据包类型构建。
"""

from dataclasses import dataclass


class Message:
    """所有服务器消息的基类 (仅用于类型标注与 isinstance 判断)。"""

    __slots__ = ()


@dataclass(frozen=True)
class LoginOk(Message):
    """登录成功 (a)。"""


@dataclass(frozen=True)
class OpenMessage(Message):
    """群组内的公开消息 (b)。"""

    sender: str
    text: str


@dataclass(frozen=True)
class PersonalMessage(Message):
    """私聊消息 (c)。"""

    sender: str
    text: str


@dataclass(frozen=True)
class StatusMessage(Message):
    """状态消息 (d)，如 "Arrive"、"Sign-off"、"Topic"。"""

    category: str
    text: str


@dataclass(frozen=True)
class ErrorMessage(Message):
    """服务器报告的错误 (e)。握手阶段收到它意味着登录被拒绝。"""

    text: str


@dataclass(frozen=True)
class ImportantMessage(Message):
    """重要消息 (f)。"""

    category: str
    text: str


@dataclass(frozen=True)
class ExitMessage(Message):
    """服务器通知客户端断开 (g)。"""


@dataclass(frozen=True)
class CommandOutput(Message):
    """命令输出 (i)。

    Attributes:
        output_type: 输出类型，如 "co" (普通输出)、"ec" (命令结束)、"wl" (who 列表行)。
        fields: 其余字段，含义取决于 output_type。
    """

    output_type: str
    fields: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(self.fields)


@dataclass(frozen=True)
class ProtocolInfo(Message):
    """连接建立后服务器发送的协议横幅 (j)。"""

    level: str
    host_id: str = ""
    server_id: str = ""


@dataclass(frozen=True)
class BeepMessage(Message):
    """有人对你蜂鸣 (k)。"""

    sender: str


@dataclass(frozen=True)
class PingMessage(Message):
    """服务器心跳请求 (l)。默认由库内部应答，不会交给消费者。"""

    message_id: str = ""


@dataclass(frozen=True)
class PongMessage(Message):
    """心跳应答 (m)。"""

    message_id: str = ""


@dataclass(frozen=True)
class NoopMessage(Message):
    """空操作 (n)。"""


@dataclass(frozen=True)
class UnknownMessage(Message):
    """未知类型的数据包，保留全部原始字段以便前向兼容。"""

    tag: str
    fields: tuple[bytes, ...] = ()


@dataclass(frozen=True)
class Closed(Message):
    """本地终止哨兵：两个 Pump 都已退出，消息序列到此结束。

    Attributes:
        reason: 人类可读的关闭原因。
        error: 导致关闭的异常；正常关闭时为 None。
    """

    reason: str = ""
    error: Exception | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None
