"""structlog 配置模块

日志统一写 stderr：MCP stdio 传输占用 stdout，CLI 的 stdout 只输出结果。
"""

import logging
import os
import sys

import structlog


def setup_logging() -> None:
    """初始化 structlog 配置

    TDL_LOG_FORMAT 选择渲染模式："json" 输出结构化 JSON，其余（默认 "dev"）为可读输出。
    TDL_LOG_LEVEL 控制级别，默认 WARNING，交互输出中只出现告警。
    """
    log_format = os.environ.get("TDL_LOG_FORMAT", "dev")
    log_level = os.environ.get("TDL_LOG_LEVEL", "WARNING")

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[structlog.stdlib.add_log_level, timestamper],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))
