# src/icb_core/__init__.py
"""
icb-core v0.3.0
ICB (Internet Citizen's Band) 聊天协议的异步客户端核心库。
"""

# 暴露核心配置
from .config import (
    IcbConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露门面与会话
from .core import ClientHandle, init

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    ConfigError,
    ConnectError,
    ConnectionClosedError,
    IcbError,
    LoginError,
    NetworkError,
    PacketTooLargeError,
    ProtocolError,
    ResolveError,
    StateError,
    TruncatedPacketError,
    ValidationError,
)
from .protocols.commands import (
    Beep,
    ChangeGroup,
    ChangeNickname,
    Command,
    Exit,
    Login,
    Pong,
    PrivateMessage,
    Raw,
    Say,
    UserCommand,
)
from .protocols.messages import (
    BeepMessage,
    Closed,
    CommandOutput,
    ErrorMessage,
    ExitMessage,
    ImportantMessage,
    LoginOk,
    Message,
    NoopMessage,
    OpenMessage,
    PersonalMessage,
    PingMessage,
    PongMessage,
    ProtocolInfo,
    StatusMessage,
    UnknownMessage,
)
from .session import Session
from .state import IcbState, SessionStatus

__version__ = "0.3.0"

__all__ = [
    "init",
    "ClientHandle",
    "Session",
    "IcbConfig",
    "IcbState",
    "SessionStatus",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    # 异常
    "IcbError",
    "ConfigError",
    "NetworkError",
    "ResolveError",
    "ConnectError",
    "ConnectionClosedError",
    "LoginError",
    "ProtocolError",
    "TruncatedPacketError",
    "ValidationError",
    "PacketTooLargeError",
    "StateError",
    # 命令
    "Command",
    "Login",
    "Say",
    "PrivateMessage",
    "ChangeNickname",
    "ChangeGroup",
    "Pong",
    "Beep",
    "UserCommand",
    "Exit",
    "Raw",
    # 消息
    "Message",
    "LoginOk",
    "OpenMessage",
    "PersonalMessage",
    "StatusMessage",
    "ErrorMessage",
    "ImportantMessage",
    "ExitMessage",
    "CommandOutput",
    "ProtocolInfo",
    "BeepMessage",
    "PingMessage",
    "PongMessage",
    "NoopMessage",
    "UnknownMessage",
    "Closed",
]
