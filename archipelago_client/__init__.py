"""Text-only client connector for Archipelago multiworld servers."""

__version__ = "0.1.0"

from .address import (
    DEFAULT_SERVER_PORT,
    ConnectionTarget,
    StartupOptions,
    parse_address,
    parse_startup_query,
)
from .collaborators import BufferLogSink, LogSink, NullLogSink, StreamLogSink
from .config import ClientConfig, ConfigLoadError, load_config
from .data_package import ItemLocationIndex, build_item_and_location_data
from .errors import (
    ArchipelagoAuthError,
    ArchipelagoClientError,
    ArchipelagoConnectionError,
    ArchipelagoHandshakeError,
    ArchipelagoProtocolError,
    ArchipelagoRetriesExhausted,
    ArchipelagoTimeout,
)
from .identity import ClientIdProvider, MemoryStorage, Storage, YamlFileStorage
from .protocol import (
    NetworkPlayer,
    build_connect,
    build_get_data_package,
    build_say,
)
from .reconnect import ReconnectCounter, ReconnectState, ReconnectSupervisor
from .session import ArchipelagoSession, ConnectionState, SessionCredentials
from .ws import connect_websocket
from .ws_client import (
    ArchipelagoWsClient,
    ArchipelagoWsMessage,
    ArchipelagoWsMessageType,
)

__all__ = [
    "DEFAULT_SERVER_PORT",
    "ArchipelagoAuthError",
    "ArchipelagoClientError",
    "ArchipelagoConnectionError",
    "ArchipelagoHandshakeError",
    "ArchipelagoProtocolError",
    "ArchipelagoRetriesExhausted",
    "ArchipelagoSession",
    "ArchipelagoTimeout",
    "ArchipelagoWsClient",
    "ArchipelagoWsMessage",
    "ArchipelagoWsMessageType",
    "BufferLogSink",
    "ClientConfig",
    "ClientIdProvider",
    "ConfigLoadError",
    "ConnectionState",
    "ConnectionTarget",
    "ItemLocationIndex",
    "LogSink",
    "MemoryStorage",
    "NetworkPlayer",
    "NullLogSink",
    "ReconnectCounter",
    "ReconnectState",
    "ReconnectSupervisor",
    "SessionCredentials",
    "StartupOptions",
    "Storage",
    "StreamLogSink",
    "YamlFileStorage",
    "__version__",
    "build_connect",
    "build_get_data_package",
    "build_item_and_location_data",
    "build_say",
    "connect_websocket",
    "load_config",
    "parse_address",
    "parse_startup_query",
]
