# src/icb_core/protocols/commands.py
"""
客户端 -> 服务器的意图 (Commands)

消费者构造这些值对象并交给 ClientHandle.send()，由 Outbound Pump 编码发送。
"""

from dataclasses import dataclass

from .constants import LOGIN_COMMAND


class Command:
    """所有客户端命令的基类。"""

    __slots__ = ()


@dataclass(frozen=True)
class Login(Command):
    """登录 (a)。必须是连接上的第一个客户端数据包。

    Attributes:
        nickname: 昵称。
        group: 登录后进入的群组。
        password: 可选密码。
        login_id: 登录 ID，缺省时使用昵称。
        command: 登录命令，"login" 或 "w" (仅列出在线用户)。
    """

    nickname: str
    group: str
    password: str | None = None
    login_id: str | None = None
    command: str = LOGIN_COMMAND

    def __repr__(self) -> str:
        """隐藏密码字段，防止日志泄露敏感信息。"""
        masked = None if self.password is None else "******"
        return (
            f"Login(nickname={self.nickname!r}, group={self.group!r}, "
            f"password={masked!r}, login_id={self.login_id!r}, command={self.command!r})"
        )


@dataclass(frozen=True)
class Say(Command):
    """向当前群组发送公开消息 (b)。"""

    text: str


@dataclass(frozen=True)
class PrivateMessage(Command):
    """私聊 (h "m")。"""

    target: str
    text: str


@dataclass(frozen=True)
class ChangeNickname(Command):
    """修改昵称 (h "name")。"""

    name: str


@dataclass(frozen=True)
class ChangeGroup(Command):
    """切换群组 (h "g")。"""

    name: str


@dataclass(frozen=True)
class Pong(Command):
    """心跳应答 (m)。"""

    message_id: str = ""


@dataclass(frozen=True)
class Beep(Command):
    """对某人蜂鸣 (h "beep")。"""

    target: str


@dataclass(frozen=True)
class UserCommand(Command):
    """通用的服务器命令 (h)，如 "topic"、"w"。"""

    command: str
    args: str = ""


@dataclass(frozen=True)
class Exit(Command):
    """本地控制命令：在此之前排队的命令发送完毕后关闭会话。没有线上形式。"""


@dataclass(frozen=True)
class Raw(Command):
    """逃生舱：按原样发送任意类型标识与字段。

    字段可以是 str (按会话编码转换) 或 bytes。
    """

    tag: str
    fields: tuple[str | bytes, ...] = ()
