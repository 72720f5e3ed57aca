"""
Hyve Relay - key-exchange handshake and ciphertext mailbox relay.

The server stores opaque cryptographic material and never decrypts,
verifies or validates it.
"""

from .errors import (
    RelayError,
    ConflictError,
    NotFoundError,
    InvalidStateError,
    ValidationError,
)
from .models import Handshake, HandshakeEntry, HandshakeStatus, Message
from .storage import HandshakeStore, MailboxStore, RelayState
from .sweeper import ExpirySweeper

__version__ = "0.1.0"

__all__ = [
    # Errors
    "RelayError",
    "ConflictError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    # Models
    "Handshake",
    "HandshakeEntry",
    "HandshakeStatus",
    "Message",
    # Stores
    "HandshakeStore",
    "MailboxStore",
    "RelayState",
    "ExpirySweeper",
]
