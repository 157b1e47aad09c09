# src/icb_core/protocols/__init__.py
"""
ICB 协议层 (Protocol Layer)

本包负责数据包的纯粹分帧 (Framing) 与编解码 (Codec)。

- 除 framing 中的 read_packet / write_packet 外，不包含任何 socket 操作。
- 不包含任何状态管理 (State)。
- 不依赖于 core、session 或 network 层。
"""

from . import commands, constants, messages
from .codec import decode_command, decode_message, encode_command, encode_message
from .framing import Packet, decode_payload, encode_packet, read_packet, write_packet

# 公共 API
__all__ = [
    "commands",
    "constants",
    "messages",
    "Packet",
    "encode_packet",
    "decode_payload",
    "read_packet",
    "write_packet",
    "decode_message",
    "encode_command",
    "encode_message",
    "decode_command",
]
