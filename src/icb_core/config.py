"""
ICB 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (含 .env 文件) 或字典中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError
from .protocols.constants import SEPARATOR

logger = logging.getLogger(__name__)

DEFAULT_PORT = 7326
DEFAULT_GROUP = "1"


@dataclass(frozen=True)
class IcbConfig:
    """init() 的强类型配置对象。

    所有字段均为只读 (frozen=True)，由调用方构造一次后传给 init，
    不存在任何进程级的全局配置。

    Attributes:
        host: 服务器主机名或 IP。
        nickname: 登录昵称。
        port: 服务器端口 (ICB 默认 7326)。
        group: 登录后进入的群组。
        password: 可选的登录密码。
        login_id: 登录 ID，缺省时使用昵称。
        encoding: 文本字段的编码。
        connect_timeout: TCP 连接超时 (秒)。
        login_timeout: 等待登录响应的超时 (秒)。
        surface_pings: 为 True 时 Ping 在自动应答之外也会交给消费者。
    """

    host: str
    nickname: str
    port: int = DEFAULT_PORT
    group: str = DEFAULT_GROUP
    password: str | None = None
    login_id: str | None = None
    encoding: str = "utf-8"
    connect_timeout: float = 10.0
    login_timeout: float = 30.0
    surface_pings: bool = False

    def __repr__(self) -> str:
        """覆盖默认的 repr，隐藏密码字段，防止日志泄露敏感信息。"""
        return (
            f"<{self.__class__.__name__} "
            f"server={self.host}:{self.port}, "
            f"nickname='{self.nickname}', "
            f"group='{self.group}', "
            f"password={'******' if self.password else None}>"
        )


def create_config_from_dict(raw_data: dict[str, Any]) -> IcbConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        IcbConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    try:
        # --- 内部辅助函数 ---
        def _req(key: str) -> Any:
            """获取必要字段，缺失则报错"""
            if key not in raw_data or raw_data[key] in (None, ""):
                raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
            return raw_data[key]

        def _opt_str(key: str) -> str | None:
            val = raw_data.get(key)
            if val is None or val == "":
                return None
            return str(val)

        def _to_bool(key: str, default: bool) -> bool:
            val = raw_data.get(key, default)
            if isinstance(val, str):
                return val.strip().lower() in ("1", "true", "yes", "on")
            return bool(val)

        def _to_port(key: str) -> int:
            val = raw_data.get(key, DEFAULT_PORT)
            try:
                port = int(val)
            except (TypeError, ValueError):
                raise ConfigError(f"端口格式无效 '{key}': {val}")
            if not 1 <= port <= 65535:
                raise ConfigError(f"端口越界 '{key}': {port}")
            return port

        def _to_positive(key: str, default: float) -> float:
            val = raw_data.get(key, default)
            try:
                num = float(val)
            except (TypeError, ValueError):
                raise ConfigError(f"数值格式无效 '{key}': {val}")
            if num <= 0:
                raise ConfigError(f"'{key}' 必须为正数: {num}")
            return num

        nickname = str(_req("nickname")).strip()
        if any(c.isspace() for c in nickname) or SEPARATOR.decode() in nickname:
            raise ConfigError(f"昵称不能包含空白或分隔符: {nickname!r}")

        encoding = str(raw_data.get("encoding", "utf-8"))
        try:
            "".encode(encoding)
        except LookupError:
            raise ConfigError(f"未知的编码: {encoding}")

        # --- 构建对象 ---
        return IcbConfig(
            host=str(_req("host")),
            nickname=nickname,
            port=_to_port("port"),
            group=str(raw_data.get("group") or DEFAULT_GROUP),
            password=_opt_str("password"),
            login_id=_opt_str("login_id"),
            encoding=encoding,
            connect_timeout=_to_positive("connect_timeout", 10.0),
            login_timeout=_to_positive("login_timeout", 30.0),
            surface_pings=_to_bool("surface_pings", False),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> IcbConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [icb]: 单服务器配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        IcbConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]

    elif "icb" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [icb] 节，忽略 profile='{profile}'。")
        raw_config = data["icb"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(env_file: Path | None = None) -> IcbConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    读取所有以 `ICB_` 开头的环境变量并映射到配置字段，
    例如: `ICB_NICKNAME` -> `nickname`。
    如果给出 env_file，会先用 python-dotenv 将其载入环境 (不覆盖已有变量)。

    Args:
        env_file: 可选的 .env 文件路径。

    Returns:
        IcbConfig: 配置对象。

    Raises:
        ConfigError: .env 文件不存在，或未检测到任何相关环境变量。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f".env 文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=False)
        logger.debug(f"已载入 .env 文件: {env_file}")

    env_map = {
        "host": "HOST",
        "port": "PORT",
        "nickname": "NICKNAME",
        "group": "GROUP",
        "password": "PASSWORD",
        "login_id": "LOGIN_ID",
        "encoding": "ENCODING",
        "connect_timeout": "CONNECT_TIMEOUT",
        "login_timeout": "LOGIN_TIMEOUT",
        "surface_pings": "SURFACE_PINGS",
    }

    raw_data = {}

    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"ICB_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError("未检测到 ICB_ 前缀的环境变量")

    return create_config_from_dict(raw_data)
