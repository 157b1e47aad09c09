# src/icb_core/protocols/codec.py
"""
ICB 编解码器 (Codec)

负责 Packet 与类型化的 Message / Command 之间的相互转换。
本模块是无状态的 (Stateless)，不包含任何 socket 操作。

主方向:
    decode_message: 服务器数据包 -> Message
    encode_command: Command -> 客户端数据包

对称方向 (用于模拟对端与往返校验):
    encode_message: Message -> 服务器数据包
    decode_command: 客户端数据包 -> Command
"""

import logging
from collections.abc import Callable

from ..exceptions import PacketTooLargeError, ProtocolError, ValidationError
from . import commands as cmd
from . import messages as msg
from .constants import MAX_PAYLOAD_LEN, SEPARATOR, CommandName, PacketType
from .framing import Packet, check_tag

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


# =========================================================================
# 字段工具
# =========================================================================


def _text(raw: bytes, encoding: str) -> str:
    return raw.decode(encoding, "replace")


def _require(packet: Packet, count: int) -> None:
    if len(packet.fields) < count:
        raise ProtocolError(
            f"[{packet.tag}] 包缺少必要字段: 需要 {count} 个, 实际 {len(packet.fields)} 个"
        )


def _optional(packet: Packet, index: int, encoding: str) -> str:
    if index < len(packet.fields):
        return _text(packet.fields[index], encoding)
    return ""


def _to_field(value: str | bytes, encoding: str, name: str = "field") -> bytes:
    """把单个字段转换为字节串并校验分隔符。"""
    if isinstance(value, bytes):
        raw = value
    else:
        try:
            raw = value.encode(encoding)
        except UnicodeEncodeError as e:
            raise ValidationError(f"{name} 无法以 {encoding} 编码: {e}") from e

    if SEPARATOR in raw:
        raise ValidationError(f"{name} 包含保留分隔符 0x01")
    return raw


def _build(tag: str, *fields: bytes) -> Packet:
    check_tag(tag)
    packet = Packet(tag=tag, fields=tuple(fields))
    size = len(packet.payload)
    if size > MAX_PAYLOAD_LEN:
        raise PacketTooLargeError(size, MAX_PAYLOAD_LEN)
    return packet


# =========================================================================
# 解码: Packet -> Message
# =========================================================================


def _decode_login_ok(packet: Packet, encoding: str) -> msg.Message:
    return msg.LoginOk()


def _decode_open(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 2)
    return msg.OpenMessage(
        sender=_text(packet.fields[0], encoding), text=_text(packet.fields[1], encoding)
    )


def _decode_personal(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 2)
    return msg.PersonalMessage(
        sender=_text(packet.fields[0], encoding), text=_text(packet.fields[1], encoding)
    )


def _decode_status(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 2)
    return msg.StatusMessage(
        category=_text(packet.fields[0], encoding),
        text=_text(packet.fields[1], encoding),
    )


def _decode_error(packet: Packet, encoding: str) -> msg.Message:
    return msg.ErrorMessage(text=_optional(packet, 0, encoding))


def _decode_important(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 2)
    return msg.ImportantMessage(
        category=_text(packet.fields[0], encoding),
        text=_text(packet.fields[1], encoding),
    )


def _decode_exit(packet: Packet, encoding: str) -> msg.Message:
    return msg.ExitMessage()


def _decode_command_output(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 1)
    return msg.CommandOutput(
        output_type=_text(packet.fields[0], encoding),
        fields=tuple(_text(f, encoding) for f in packet.fields[1:]),
    )


def _decode_protocol(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 1)
    return msg.ProtocolInfo(
        level=_text(packet.fields[0], encoding),
        host_id=_optional(packet, 1, encoding),
        server_id=_optional(packet, 2, encoding),
    )


def _decode_beep(packet: Packet, encoding: str) -> msg.Message:
    _require(packet, 1)
    return msg.BeepMessage(sender=_text(packet.fields[0], encoding))


def _decode_ping(packet: Packet, encoding: str) -> msg.Message:
    return msg.PingMessage(message_id=_optional(packet, 0, encoding))


def _decode_pong(packet: Packet, encoding: str) -> msg.Message:
    return msg.PongMessage(message_id=_optional(packet, 0, encoding))


def _decode_noop(packet: Packet, encoding: str) -> msg.Message:
    return msg.NoopMessage()


_MESSAGE_DECODERS: dict[str, Callable[[Packet, str], msg.Message]] = {
    PacketType.LOGIN: _decode_login_ok,
    PacketType.OPEN: _decode_open,
    PacketType.PERSONAL: _decode_personal,
    PacketType.STATUS: _decode_status,
    PacketType.ERROR: _decode_error,
    PacketType.IMPORTANT: _decode_important,
    PacketType.EXIT: _decode_exit,
    PacketType.COMMAND_OUTPUT: _decode_command_output,
    PacketType.PROTOCOL: _decode_protocol,
    PacketType.BEEP: _decode_beep,
    PacketType.PING: _decode_ping,
    PacketType.PONG: _decode_pong,
    PacketType.NOOP: _decode_noop,
}


def decode_message(packet: Packet, encoding: str = DEFAULT_ENCODING) -> msg.Message:
    """将服务器数据包解码为 Message。

    Args:
        packet: Framer 读出的数据包。
        encoding: 文本字段的编码，无法解码的字节以替换字符表示。

    Returns:
        Message: 对应的消息；未知类型返回保留原始字段的 UnknownMessage。

    Raises:
        ProtocolError: 已知类型的数据包缺少必要字段。
    """
    decoder = _MESSAGE_DECODERS.get(packet.tag)
    if decoder is None:
        logger.debug(f"未知的数据包类型 {packet.tag!r}，按 UnknownMessage 保留")
        return msg.UnknownMessage(tag=packet.tag, fields=packet.fields)
    return decoder(packet, encoding)


# =========================================================================
# 编码: Command -> Packet
# =========================================================================


def encode_command(command: cmd.Command, encoding: str = DEFAULT_ENCODING) -> Packet:
    """按协议规定的字段顺序将 Command 编码为数据包。

    Args:
        command: 客户端命令。
        encoding: 文本字段的编码。

    Returns:
        Packet: 已通过全部线上约束校验的数据包。

    Raises:
        ValidationError: 字段包含分隔符、无法编码、载荷超长，或命令没有线上形式。
    """

    def f(value: str | bytes, name: str = "field") -> bytes:
        return _to_field(value, encoding, name)

    if isinstance(command, cmd.Login):
        if not command.nickname:
            raise ValidationError("登录昵称不能为空")
        fields = [
            f(command.login_id or command.nickname, "login_id"),
            f(command.nickname, "nickname"),
            f(command.group, "group"),
            f(command.command, "command"),
        ]
        if command.password is not None:
            fields.append(f(command.password, "password"))
        return _build(PacketType.LOGIN, *fields)

    if isinstance(command, cmd.Say):
        return _build(PacketType.OPEN, f(command.text, "text"))

    if isinstance(command, cmd.PrivateMessage):
        if not command.target or any(c.isspace() for c in command.target):
            raise ValidationError(f"私聊对象无效: {command.target!r}")
        return _build(
            PacketType.COMMAND,
            f(CommandName.MESSAGE),
            f(f"{command.target} {command.text}", "text"),
        )

    if isinstance(command, cmd.ChangeNickname):
        return _build(PacketType.COMMAND, f(CommandName.NAME), f(command.name, "name"))

    if isinstance(command, cmd.ChangeGroup):
        return _build(PacketType.COMMAND, f(CommandName.GROUP), f(command.name, "name"))

    if isinstance(command, cmd.Beep):
        return _build(PacketType.COMMAND, f(CommandName.BEEP), f(command.target, "target"))

    if isinstance(command, cmd.UserCommand):
        if not command.command:
            raise ValidationError("命令名不能为空")
        return _build(
            PacketType.COMMAND, f(command.command, "command"), f(command.args, "args")
        )

    if isinstance(command, cmd.Pong):
        if command.message_id:
            return _build(PacketType.PONG, f(command.message_id, "message_id"))
        return _build(PacketType.PONG)

    if isinstance(command, cmd.Raw):
        return _build(command.tag, *(f(value) for value in command.fields))

    if isinstance(command, cmd.Exit):
        raise ValidationError("Exit 是本地控制命令，没有线上形式")

    raise ValidationError(f"不支持的命令类型: {type(command).__name__}")


# =========================================================================
# 对称方向
# =========================================================================


def encode_message(message: msg.Message, encoding: str = DEFAULT_ENCODING) -> Packet:
    """将 Message 编码为服务器数据包 (用于模拟服务器与往返校验)。

    Raises:
        ValidationError: 字段违反线上约束，或消息是本地哨兵 (Closed)。
    """

    def f(value: str | bytes) -> bytes:
        return _to_field(value, encoding)

    if isinstance(message, msg.LoginOk):
        return _build(PacketType.LOGIN)
    if isinstance(message, msg.OpenMessage):
        return _build(PacketType.OPEN, f(message.sender), f(message.text))
    if isinstance(message, msg.PersonalMessage):
        return _build(PacketType.PERSONAL, f(message.sender), f(message.text))
    if isinstance(message, msg.StatusMessage):
        return _build(PacketType.STATUS, f(message.category), f(message.text))
    if isinstance(message, msg.ErrorMessage):
        return _build(PacketType.ERROR, f(message.text))
    if isinstance(message, msg.ImportantMessage):
        return _build(PacketType.IMPORTANT, f(message.category), f(message.text))
    if isinstance(message, msg.ExitMessage):
        return _build(PacketType.EXIT)
    if isinstance(message, msg.CommandOutput):
        return _build(
            PacketType.COMMAND_OUTPUT,
            f(message.output_type),
            *(f(value) for value in message.fields),
        )
    if isinstance(message, msg.ProtocolInfo):
        return _build(
            PacketType.PROTOCOL,
            f(message.level),
            f(message.host_id),
            f(message.server_id),
        )
    if isinstance(message, msg.BeepMessage):
        return _build(PacketType.BEEP, f(message.sender))
    if isinstance(message, (msg.PingMessage, msg.PongMessage)):
        tag = PacketType.PING if isinstance(message, msg.PingMessage) else PacketType.PONG
        if message.message_id:
            return _build(tag, f(message.message_id))
        return _build(tag)
    if isinstance(message, msg.NoopMessage):
        return _build(PacketType.NOOP)
    if isinstance(message, msg.UnknownMessage):
        return _build(message.tag, *(f(value) for value in message.fields))

    raise ValidationError(f"消息没有线上形式: {type(message).__name__}")


def decode_command(packet: Packet, encoding: str = DEFAULT_ENCODING) -> cmd.Command:
    """将客户端数据包解码为 Command (服务器视角，用于模拟对端)。

    登录 ID 与昵称相同时解码为 login_id=None，与 Login 的缺省行为保持一致。
    无法识别的类型解码为 Raw，字段保持为原始字节。

    Raises:
        ProtocolError: 已知类型的数据包缺少必要字段。
    """

    def t(index: int) -> str:
        return _text(packet.fields[index], encoding)

    if packet.tag == PacketType.LOGIN:
        _require(packet, 4)
        login_id, nickname = t(0), t(1)
        return cmd.Login(
            nickname=nickname,
            group=t(2),
            password=t(4) if len(packet.fields) > 4 else None,
            login_id=None if login_id == nickname else login_id,
            command=t(3),
        )

    if packet.tag == PacketType.OPEN:
        return cmd.Say(text=_optional(packet, 0, encoding))

    if packet.tag == PacketType.COMMAND:
        _require(packet, 1)
        name, args = t(0), _optional(packet, 1, encoding)
        if name in (CommandName.MESSAGE, CommandName.MESSAGE_LONG):
            target, _, text = args.partition(" ")
            return cmd.PrivateMessage(target=target, text=text)
        if name == CommandName.NAME:
            return cmd.ChangeNickname(name=args)
        if name == CommandName.GROUP:
            return cmd.ChangeGroup(name=args)
        if name == CommandName.BEEP:
            return cmd.Beep(target=args)
        return cmd.UserCommand(command=name, args=args)

    if packet.tag == PacketType.PONG:
        return cmd.Pong(message_id=_optional(packet, 0, encoding))

    return cmd.Raw(tag=packet.tag, fields=packet.fields)
