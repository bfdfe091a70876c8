from xbeelink.config.enginespec import (
    EngineSpec,
    FramingSpec,
    LoggingSpec,
    SerialSpec,
    SessionSpec,
    load_enginespec,
    save_enginespec,
)

__all__ = [
    "EngineSpec",
    "SerialSpec",
    "SessionSpec",
    "FramingSpec",
    "LoggingSpec",
    "load_enginespec",
    "save_enginespec",
]
