# src/icb_core/protocols/constants.py
"""
ICB 协议常量表 (Constants)

仅定义协议的结构性常量（包类型、分隔符、长度上限、命令名）。
不包含任何默认策略值（如默认群组、超时），这些应由 Config 注入。
"""

# =========================================================================
# 线上格式 (Wire Format)
# =========================================================================
SEPARATOR = b"\x01"  # 字段分隔符 (^A)
TERMINATOR = b"\x00"  # 服务器常在载荷末尾附带的 NUL

MAX_PAYLOAD_LEN = 255  # 长度字节能表示的最大载荷


# =========================================================================
# 数据包类型 (Packet Type Tags)
# =========================================================================
class PacketType:
    """数据包载荷首字节的类型标识"""

    LOGIN = "a"  # 登录 (C->S) / 登录成功 (S->C)
    OPEN = "b"  # 公开消息
    PERSONAL = "c"  # 私聊消息 (S->C)
    STATUS = "d"  # 状态消息 (S->C)
    ERROR = "e"  # 错误消息 (S->C)
    IMPORTANT = "f"  # 重要消息 (S->C)
    EXIT = "g"  # 断开通知 (S->C)
    COMMAND = "h"  # 命令 (C->S)
    COMMAND_OUTPUT = "i"  # 命令输出 (S->C)
    PROTOCOL = "j"  # 协议版本横幅 (S->C)
    BEEP = "k"  # 蜂鸣 (S->C)
    PING = "l"  # 心跳请求
    PONG = "m"  # 心跳应答
    NOOP = "n"  # 空操作


# =========================================================================
# 命令名 (h 包的第一个字段)
# =========================================================================
class CommandName:
    """icbd 服务器能理解的命令名"""

    BEEP = "beep"
    GROUP = "g"
    MESSAGE = "m"
    MESSAGE_LONG = "msg"
    NAME = "name"


# 登录包中的登录命令
LOGIN_COMMAND = "login"
