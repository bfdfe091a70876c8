from xbeelink.runtime.addressing import PARAMETERS, AddressingState, AddressingStateStore
from xbeelink.runtime.clock import FakeClock, RealClock
from xbeelink.runtime.dispatcher import Dispatcher
from xbeelink.runtime.engine import XBeeEngine
from xbeelink.runtime.mode import Mode, ModeController, StartupReport, StartupState
from xbeelink.runtime.session import CorrelationTable, SessionManager

__all__ = [
    "PARAMETERS",
    "AddressingState",
    "AddressingStateStore",
    "CorrelationTable",
    "Dispatcher",
    "FakeClock",
    "Mode",
    "ModeController",
    "RealClock",
    "SessionManager",
    "StartupReport",
    "StartupState",
    "XBeeEngine",
]
