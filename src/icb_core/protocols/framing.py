# src/icb_core/protocols/framing.py
"""
ICB 协议分帧器 (Framer)

负责在原始字节流与离散的数据包 (Packet) 之间转换。
分帧完全由长度字节驱动，不做任何分隔符扫描。

线上格式:
    byte[0]      = N        -- 1..255，后续字节数
    byte[1]      = type_tag -- 单个 ASCII 字符
    byte[2..N]   = 以 0x01 连接的字段
"""

import asyncio
import logging
from dataclasses import dataclass

from ..exceptions import (
    ConnectionClosedError,
    NetworkError,
    PacketTooLargeError,
    ProtocolError,
    TruncatedPacketError,
    ValidationError,
)
from .constants import MAX_PAYLOAD_LEN, SEPARATOR, TERMINATOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Packet:
    """线上的原始数据单元。

    Attributes:
        tag: 单字符类型标识 (如 'b')。
        fields: 有序的字节串字段列表，字段中不得包含分隔符。
    """

    tag: str
    fields: tuple[bytes, ...] = ()

    @property
    def payload(self) -> bytes:
        """类型字节 + 以分隔符连接的字段 (不含长度字节)。"""
        return self.tag.encode("ascii") + SEPARATOR.join(self.fields)


def check_tag(tag: str) -> None:
    """类型标识必须是单个 ASCII 字符。

    Raises:
        ValidationError: 标识为空、多于一个字符，或不是 ASCII。
    """
    if len(tag) != 1 or not tag.isascii():
        raise ValidationError(f"无效的类型标识: {tag!r}")


def split_fields(body: bytes) -> tuple[bytes, ...]:
    """将载荷主体按分隔符切分为字段。

    空主体表示没有字段；只有线上显式带有尾随分隔符时才会出现尾随空字段。
    """
    if not body:
        return ()
    return tuple(body.split(SEPARATOR))


def encode_packet(packet: Packet) -> bytes:
    """将 Packet 编码为带长度前缀的字节串。

    Args:
        packet: 待编码的数据包。

    Returns:
        bytes: 长度字节 + 载荷。

    Raises:
        ValidationError: 类型标识不是单个 ASCII 字符，或字段包含分隔符。
        PacketTooLargeError: 载荷超过 255 字节。
    """
    check_tag(packet.tag)

    for field in packet.fields:
        if SEPARATOR in field:
            raise ValidationError(f"字段包含保留分隔符 0x01: {field!r}")

    payload = packet.payload
    if len(payload) > MAX_PAYLOAD_LEN:
        raise PacketTooLargeError(len(payload), MAX_PAYLOAD_LEN)

    return bytes([len(payload)]) + payload


def decode_payload(payload: bytes) -> Packet:
    """将一个载荷 (不含长度字节) 解析为 Packet。

    服务器通常在载荷末尾附带一个 NUL，这里会去掉它。

    Raises:
        ProtocolError: 载荷为空。
    """
    if not payload:
        raise ProtocolError("收到空载荷的数据包")

    if payload.endswith(TERMINATOR):
        payload = payload[:-1]
        if not payload:
            raise ProtocolError("数据包仅包含 NUL 终止符")

    tag = chr(payload[0])
    return Packet(tag=tag, fields=split_fields(payload[1:]))


async def read_packet(reader: asyncio.StreamReader) -> Packet:
    """从流中读取恰好一个数据包。

    Args:
        reader: 连接的读半部。

    Returns:
        Packet: 解析后的数据包。

    Raises:
        ConnectionClosedError: 对端在数据包边界处关闭连接。
        TruncatedPacketError: 流在读满 N 字节前结束。
        ProtocolError: 长度字节为 0。
        NetworkError: 底层读取失败。
    """
    try:
        header = await reader.readexactly(1)
    except asyncio.IncompleteReadError:
        raise ConnectionClosedError("连接已被对端关闭") from None
    except OSError as e:
        raise NetworkError(f"读取失败: {e}") from e

    length = header[0]
    if length == 0:
        raise ProtocolError("长度字节为 0")

    try:
        payload = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise TruncatedPacketError(length, len(e.partial)) from None
    except OSError as e:
        raise NetworkError(f"读取失败: {e}") from e

    packet = decode_payload(payload)
    logger.debug(f"<< [{packet.tag}] {len(packet.fields)} 个字段 ({length} 字节)")
    return packet


async def write_packet(writer: asyncio.StreamWriter, packet: Packet) -> None:
    """将一个数据包写入流。

    先完成编码与校验，失败时不会有任何字节写出。

    Raises:
        ValidationError: 数据包违反线上约束。
        NetworkError: 底层写入失败。
    """
    data = encode_packet(packet)

    try:
        writer.write(data)
        await writer.drain()
    except (OSError, RuntimeError) as e:
        raise NetworkError(f"发送失败: {e}") from e

    logger.debug(f">> [{packet.tag}] {len(packet.fields)} 个字段 ({len(data) - 1} 字节)")
