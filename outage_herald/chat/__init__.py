"""Chat-side components: IRC session, commands and TLS credentials."""

from .certs import CertificateBundle, extract_certificate_bundle, load_certificate_bundle
from .commands import Command, CommandDispatcher, CommandTable, builtin_commands
from .transport import ChatMessage, IRCSession

__all__ = [
    "CertificateBundle",
    "ChatMessage",
    "Command",
    "CommandDispatcher",
    "CommandTable",
    "IRCSession",
    "builtin_commands",
    "extract_certificate_bundle",
    "load_certificate_bundle",
]
