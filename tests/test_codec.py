# tests/test_codec.py
"""
测试编解码器：类型分派、字段顺序、未知类型保留与编码前校验。
"""

import pytest

from icb_core.exceptions import PacketTooLargeError, ProtocolError, ValidationError
from icb_core.protocols import codec
from icb_core.protocols import commands as cmd
from icb_core.protocols import messages as msg
from icb_core.protocols.framing import Packet, decode_payload

# --- 解码 (服务器 -> 客户端) ---


@pytest.mark.parametrize(
    "packet, expected",
    [
        (Packet("a"), msg.LoginOk()),
        (Packet("b", (b"bob", b"hello all")), msg.OpenMessage("bob", "hello all")),
        (Packet("c", (b"alice", b"psst")), msg.PersonalMessage("alice", "psst")),
        (Packet("d", (b"Arrive", b"carol has arrived")), msg.StatusMessage("Arrive", "carol has arrived")),
        (Packet("e", (b"Nickname already in use",)), msg.ErrorMessage("Nickname already in use")),
        (Packet("f", (b"Drop", b"server going down")), msg.ImportantMessage("Drop", "server going down")),
        (Packet("g"), msg.ExitMessage()),
        (Packet("i", (b"co", b"Group: 1")), msg.CommandOutput("co", ("Group: 1",))),
        (Packet("j", (b"1", b"localhost", b"icbd")), msg.ProtocolInfo("1", "localhost", "icbd")),
        (Packet("k", (b"dave",)), msg.BeepMessage("dave")),
        (Packet("l"), msg.PingMessage()),
        (Packet("l", (b"42",)), msg.PingMessage("42")),
        (Packet("m", (b"42",)), msg.PongMessage("42")),
        (Packet("n"), msg.NoopMessage()),
    ],
)
def test_decode_known_messages(packet, expected):
    assert codec.decode_message(packet) == expected


def test_decode_unknown_tag_preserves_raw_fields():
    """未知类型不抛异常，原始字节 (含非法 UTF-8 与空字段) 原样保留"""
    raw = (b"\xff\xfe", b"", b"tail")
    message = codec.decode_message(Packet("z", raw))

    assert message == msg.UnknownMessage(tag="z", fields=raw)


def test_decode_protocol_banner_with_level_only():
    assert codec.decode_message(Packet("j", (b"1",))) == msg.ProtocolInfo("1")


def test_decode_invalid_utf8_uses_replacement():
    message = codec.decode_message(Packet("b", (b"bob", b"caf\xe9")))
    assert message.text == "caf\ufffd"


def test_decode_with_latin1_encoding():
    message = codec.decode_message(Packet("b", (b"bob", b"caf\xe9")), encoding="latin-1")
    assert message.text == "caf\u00e9"


@pytest.mark.parametrize(
    "packet",
    [
        Packet("b", (b"bob",)),
        Packet("c"),
        Packet("d", (b"Arrive",)),
        Packet("f", (b"Drop",)),
        Packet("i"),
        Packet("j"),
        Packet("k"),
    ],
)
def test_decode_missing_required_fields(packet):
    with pytest.raises(ProtocolError):
        codec.decode_message(packet)


# --- 编码 (客户端 -> 服务器) ---


def test_encode_login_defaults():
    packet = codec.encode_command(cmd.Login(nickname="tester", group="1"))
    assert packet == Packet("a", (b"tester", b"tester", b"1", b"login"))


def test_encode_login_with_password_and_login_id():
    packet = codec.encode_command(
        cmd.Login(nickname="tester", group="hq", password="secret", login_id="uid")
    )
    assert packet == Packet("a", (b"uid", b"tester", b"hq", b"login", b"secret"))


def test_encode_login_requires_nickname():
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.Login(nickname="", group="1"))


def test_login_repr_masks_password():
    assert "secret" not in repr(cmd.Login(nickname="t", group="1", password="secret"))


@pytest.mark.parametrize(
    "command, expected",
    [
        (cmd.Say("hello"), Packet("b", (b"hello",))),
        (cmd.PrivateMessage("bob", "hi there"), Packet("h", (b"m", b"bob hi there"))),
        (cmd.ChangeNickname("newnick"), Packet("h", (b"name", b"newnick"))),
        (cmd.ChangeGroup("lounge"), Packet("h", (b"g", b"lounge"))),
        (cmd.Beep("bob"), Packet("h", (b"beep", b"bob"))),
        (cmd.UserCommand("topic", "cats"), Packet("h", (b"topic", b"cats"))),
        (cmd.Pong(), Packet("m")),
        (cmd.Pong("42"), Packet("m", (b"42",))),
        (cmd.Raw("n"), Packet("n")),
        (cmd.Raw("h", ("w", b"")), Packet("h", (b"w", b""))),
    ],
)
def test_encode_commands(command, expected):
    assert codec.encode_command(command) == expected


def test_encode_rejects_separator():
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.Say("a\x01b"))


def test_encode_rejects_separator_in_raw_bytes():
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.Raw("b", (b"x\x01y",)))


@pytest.mark.parametrize("target", ["", "two words", "tab\there"])
def test_encode_private_message_rejects_bad_target(target):
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.PrivateMessage(target, "hi"))


def test_encode_say_size_limit():
    """'b' + 254 字节文本 = 255 字节载荷，再多一个字节即超限"""
    assert len(codec.encode_command(cmd.Say("x" * 254)).payload) == 255

    with pytest.raises(PacketTooLargeError):
        codec.encode_command(cmd.Say("x" * 255))


def test_encode_size_counts_encoded_bytes():
    # "é" 在 UTF-8 下占 2 字节
    with pytest.raises(PacketTooLargeError):
        codec.encode_command(cmd.Say("é" * 128))


def test_encode_unencodable_text():
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.Say("日本"), encoding="ascii")


def test_encode_exit_has_no_wire_form():
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.Exit())


def test_encode_raw_rejects_invalid_tag():
    with pytest.raises(ValidationError):
        codec.encode_command(cmd.Raw("ab", ()))


def test_encode_closed_sentinel_has_no_wire_form():
    with pytest.raises(ValidationError):
        codec.encode_message(msg.Closed())


# --- 往返 ---


@pytest.mark.parametrize(
    "message",
    [
        msg.LoginOk(),
        msg.OpenMessage("bob", "hello"),
        msg.OpenMessage("bob", ""),
        msg.PersonalMessage("alice", "psst"),
        msg.StatusMessage("Sign-off", "bob has left"),
        msg.ErrorMessage("no such group"),
        msg.ImportantMessage("Boot", "you were booted"),
        msg.ExitMessage(),
        msg.CommandOutput("wl", (" ", "bob", "0", "1000", "user", "host", "")),
        msg.ProtocolInfo("1", "localhost", "icbd 1.2"),
        msg.BeepMessage("carol"),
        msg.PingMessage(),
        msg.PingMessage("9"),
        msg.PongMessage("9"),
        msg.NoopMessage(),
        msg.UnknownMessage("z", (b"\x80raw", b"")),
    ],
)
def test_message_round_trip(message):
    assert codec.decode_message(codec.encode_message(message)) == message


@pytest.mark.parametrize(
    "command",
    [
        cmd.Login("tester", "1"),
        cmd.Login("tester", "1", password="pw", login_id="uid", command="w"),
        cmd.Say("hello"),
        cmd.PrivateMessage("bob", "how are you"),
        cmd.ChangeNickname("newnick"),
        cmd.ChangeGroup("lounge"),
        cmd.Pong(),
        cmd.Pong("3"),
        cmd.Beep("bob"),
        cmd.UserCommand("topic", "cats and dogs"),
        cmd.Raw("z", (b"raw", b"")),
    ],
)
def test_command_round_trip(command):
    assert codec.decode_command(codec.encode_command(command)) == command


def test_decode_command_accepts_long_msg_name():
    packet = Packet("h", (b"msg", b"bob hi"))
    assert codec.decode_command(packet) == cmd.PrivateMessage("bob", "hi")


def test_unknown_non_ascii_tag_cannot_be_reencoded():
    """0x80 以上的类型字节可以解码保留，但重新编码时在本地被拒绝"""
    message = codec.decode_message(decode_payload(b"\xe9abc"))
    assert message == msg.UnknownMessage("\xe9", (b"abc",))

    with pytest.raises(ValidationError):
        codec.encode_message(message)
