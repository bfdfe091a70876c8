from xbeelink.transport.base import ITransport
from xbeelink.transport.mock import MockRadio, MockTransport, create_mock_radio_transport
from xbeelink.transport.serial_port import SerialTransport

__all__ = [
    "ITransport",
    "MockRadio",
    "MockTransport",
    "SerialTransport",
    "create_mock_radio_transport",
]
