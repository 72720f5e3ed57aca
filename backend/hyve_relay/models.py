from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# ---------- Handshakes ----------
class HandshakeStatus(str, Enum):
    INITIATED = "initiated"
    PAIRED = "paired"
    COMPLETE = "complete"
    EXPIRED = "expired"  # transient: swept records are dropped


class Handshake(BaseModel):
    initiator: str
    responder: str
    initiator_kx_pubkey: str          # opaque KEM public value
    initiator_signature: str
    responder_signature: Optional[str] = None
    encapsulated_secret: Optional[str] = None  # opaque KEM ciphertext
    status: HandshakeStatus = HandshakeStatus.INITIATED
    created_at: datetime
    paired_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class HandshakeEntry(BaseModel):
    pair_key: Tuple[str, str]
    handshake: Handshake


class InitHandshakeIn(BaseModel):
    initiator_pubkey: str = Field(..., min_length=1)
    responder_pubkey: str = Field(..., min_length=1)
    initiator_kx_pubkey: str = Field(..., min_length=1)
    initiator_signature: str = Field(..., min_length=1)


class PairHandshakeIn(BaseModel):
    initiator_pubkey: str = Field(..., min_length=1)
    responder_pubkey: str = Field(..., min_length=1)
    encapsulated_secret: str = Field(..., min_length=1)
    responder_signature: str = Field(..., min_length=1)


class CompleteHandshakeIn(BaseModel):
    initiator_pubkey: str = Field(..., min_length=1)
    responder_pubkey: str = Field(..., min_length=1)


# ---------- Messages ----------
class MessageIn(BaseModel):
    from_pubkey: str = Field(..., min_length=1)
    to_pubkey: str = Field(..., min_length=1)
    ciphertext: str  # opaque, never decoded


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_pubkey: str
    to_pubkey: str
    ciphertext: str
    timestamp: datetime  # server-assigned
