from .base import Notifier
from .console import ConsoleNotifier
from .fanout import FanOut
from .formatter import format_error_text, format_event_text, format_headline
from .webhook import WebhookNotifier

__all__ = [
    "ConsoleNotifier",
    "FanOut",
    "Notifier",
    "WebhookNotifier",
    "format_error_text",
    "format_event_text",
    "format_headline",
]
