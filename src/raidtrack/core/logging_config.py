"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出（每次重算一行，便于按 generation 检索）

只有 raidtrack.* logger 使用配置的级别；其余库保持 WARNING，
DEBUG 级的重算日志不会淹没在第三方输出里。
"""

import logging
import sys

import structlog

from .config import EngineConfig, load_engine_config

ENGINE_LOGGER_NAME = "raidtrack"


def _add_component(
    logger: logging.Logger, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    # raidtrack.sync.hub -> sync.hub
    name = event_dict.get("logger", "")
    prefix = f"{ENGINE_LOGGER_NAME}."
    if name.startswith(prefix):
        event_dict["component"] = name[len(prefix):]
    return event_dict


def setup_logging(config: EngineConfig | None = None) -> None:
    """初始化 structlog 配置

    Args:
        config: 引擎配置，None 时从环境变量加载（RAIDTRACK_LOG_FORMAT / RAIDTRACK_LOG_LEVEL）
    """
    config = config or load_engine_config()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        _add_component,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == "json":
        renderer_chain: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderer_chain,
        ],
        foreign_pre_chain=shared_processors,
    )

    # CLI 输出走 stdout，日志统一写 stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    engine_level = logging.getLevelName(config.log_level.upper())
    logging.getLogger(ENGINE_LOGGER_NAME).setLevel(
        engine_level if isinstance(engine_level, int) else logging.INFO
    )
