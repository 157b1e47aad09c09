# File: src/icb_core/exceptions.py
"""
ICB 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用（如终端 UI、机器人）能进行精细的错误处理。
"""


class IcbError(Exception):
    """ICB 核心库的所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 icb-core 抛出的已知错误。
    """

    pass


class ConfigError(IcbError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host/nickname)。
    2. 字段格式错误 (如端口越界、昵称包含空白或分隔符)。
    3. 找不到配置文件或环境变量。
    """

    pass


class NetworkError(IcbError):
    """网络层面的错误 (I/O 级别)。

    连接建立之后的任何读写失败都属于此类，对会话而言是致命的。
    """

    pass


class ResolveError(NetworkError):
    """主机名解析失败 (DNS)。发生在任何会话状态之前。"""

    pass


class ConnectError(NetworkError):
    """TCP 连接建立失败或超时。发生在任何数据包交换之前。"""

    pass


class ConnectionClosedError(NetworkError):
    """对端在数据包边界处关闭了连接 (EOF)。"""

    pass


class LoginError(IcbError):
    """登录握手被服务器拒绝。

    会话永远不会进入 CONNECTED 状态，上层需要重新调用 init。
    """

    def __init__(self, message: str, server_message: str | None = None) -> None:
        """初始化登录错误。

        Args:
            message: 错误描述信息。
            server_message: 服务器在 Error 包中返回的原始文本 (如果有)。
        """
        super().__init__(message)
        self.server_message = server_message


class ProtocolError(IcbError):
    """协议交互错误 (逻辑级别)。

    触发场景:
    1. 收到长度为 0 的数据包。
    2. 已知类型的数据包缺少必要字段。
    3. 数据帧被截断。
    """

    pass


class TruncatedPacketError(ProtocolError):
    """流在读满长度字节声明的 N 个字节之前结束。"""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"数据包被截断: 期望 {expected} 字节, 实际收到 {received} 字节")
        self.expected = expected
        self.received = received


class ValidationError(IcbError):
    """命令字段违反线上约束 (包含分隔符、超长等)。

    在编码阶段于本地拒绝，不会有任何字节写入连接，会话保持打开。
    """

    pass


class PacketTooLargeError(ValidationError):
    """组装后的载荷超过 255 字节。"""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"数据包过大: 载荷 {size} 字节, 上限 {limit} 字节")
        self.size = size
        self.limit = limit


class StateError(IcbError):
    """状态机错误 (FSM Violation)。

    触发场景:
    1. 会话关闭之后继续通过 ClientHandle 发送命令。
    2. 对同一个 Session 重复调用 run()。
    """

    pass
