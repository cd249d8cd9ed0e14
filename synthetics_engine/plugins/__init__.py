"""Telemetry plugins and their manager."""

from .attachments import AttachmentsManager
from .base import PluginKind, TelemetryPlugin
from .browser_console import BrowserConsole, filter_browser_messages
from .journey_console import JourneyConsole
from .network import NetworkManager
from .performance import PerformanceManager
from .plugin_manager import PLUGIN_TYPES, PluginManager
from .tracing import Tracing

__all__ = [
    "AttachmentsManager",
    "BrowserConsole",
    "JourneyConsole",
    "NetworkManager",
    "PLUGIN_TYPES",
    "PerformanceManager",
    "PluginKind",
    "PluginManager",
    "TelemetryPlugin",
    "Tracing",
    "filter_browser_messages",
]
