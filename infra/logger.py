import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional, TextIO

Level = Literal["DEBUG", "INFO", "WARN", "ERROR"]


class _ColoredFormatter:
    _colors = {
        "DEBUG": "\033[36m",  # 青
        "INFO": "\033[32m",   # 绿
        "WARN": "\033[33m",   # 黄
        "ERROR": "\033[31m",  # 红
        "RESET": "\033[0m",
    }

    @classmethod
    def enabled(cls) -> bool:
        """NO_COLOR 或非终端输出时不上色"""
        if os.getenv("NO_COLOR"):
            return False
        return sys.stderr.isatty()

    @classmethod
    def colorize(cls, level: Level, text: str) -> str:
        if not cls.enabled():
            return text
        return f"{cls._colors[level]}{text}{cls._colors['RESET']}"


class Logger:
    _level_rank = {"DEBUG": 0, "INFO": 1, "WARN": 2, "ERROR": 3}
    _current_level: int = 1  # 默认 INFO
    _log_file: Optional[TextIO] = None
    _log_file_path: Optional[str] = None
    _initialized: bool = False

    @classmethod
    def configure(cls, level: str = "INFO", log_file: str = ""):
        """
        配置日志系统

        Args:
            level: 日志级别，WARNING 视同 WARN
            log_file: 日志文件路径，为空则只输出到 stderr
        """
        cls._current_level = cls._rank_of(level)
        cls._open_file(log_file)
        cls._initialized = True
        cls.debug("Logger", f"日志系统已初始化 (级别: {level}, 文件: {log_file or '无'})")

    @classmethod
    def _rank_of(cls, level: str) -> int:
        level = level.upper()
        if level == "WARNING":
            level = "WARN"
        return cls._level_rank.get(level, 1)

    @classmethod
    def _open_file(cls, log_file: str):
        if cls._log_file and not cls._log_file.closed:
            cls._log_file.close()
        cls._log_file = None
        cls._log_file_path = None

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            cls._log_file = open(log_path, "a", encoding="utf-8")
            cls._log_file_path = log_file

    @classmethod
    def _ensure_initialized(cls):
        """未调用 configure 时回退到环境变量 LOG_LEVEL / LOG_FILE"""
        if cls._initialized:
            return
        cls._current_level = cls._rank_of(os.getenv("LOG_LEVEL", "INFO"))
        cls._open_file(os.getenv("LOG_FILE", ""))
        cls._initialized = True

    @classmethod
    def _log(cls, level: Level, module: str, msg: str):
        cls._ensure_initialized()

        if cls._level_rank[level] < cls._current_level:
            return

        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{ts} [{level}] {module} | {msg}"

        print(_ColoredFormatter.colorize(level, line), file=sys.stderr)

        if cls._log_file and not cls._log_file.closed:
            cls._log_file.write(line + "\n")
            cls._log_file.flush()

    @classmethod
    def debug(cls, module: str, msg: str):
        cls._log("DEBUG", module, msg)

    @classmethod
    def info(cls, module: str, msg: str):
        cls._log("INFO", module, msg)

    @classmethod
    def warn(cls, module: str, msg: str):
        cls._log("WARN", module, msg)

    @classmethod
    def warning(cls, module: str, msg: str):
        """warn 的别名"""
        cls._log("WARN", module, msg)

    @classmethod
    def error(cls, module: str, msg: str):
        cls._log("ERROR", module, msg)

    @classmethod
    def close(cls):
        """关闭日志文件"""
        if cls._log_file and not cls._log_file.closed:
            cls._log_file.close()
        cls._log_file = None
        cls._log_file_path = None


logger = Logger
