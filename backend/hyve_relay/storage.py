"""
In-memory stores for the relay.

HandshakeStore  -> ordered (initiator, responder) pair -> Handshake
MailboxStore    -> recipient -> append-only list of Message

Each store guards its mapping with one lock. Every public method holds
that lock for the whole logical operation (lookup + mutate), so operations
on the same pair key are linearized, including sweep passes. The stores
never share a lock and never call each other.

Volatile: all state is lost when the process exits.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .models import Handshake, HandshakeEntry, HandshakeStatus, Message

logger = logging.getLogger("hyve_relay.storage")

Clock = Callable[[], datetime]
PairKey = Tuple[str, str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _short(value: str) -> str:
    return value if len(value) <= 12 else value[:12] + "..."


def _require(**fields: str) -> None:
    for name, value in fields.items():
        if not value:
            raise ValidationError(f"{name} must be a non-empty string")


class HandshakeStore:
    def __init__(self, clock: Optional[Clock] = None):
        self._records: Dict[PairKey, Handshake] = {}
        self._lock = threading.RLock()
        self._clock = clock or utc_now

    def init(
        self,
        initiator: str,
        responder: str,
        initiator_kx_pubkey: str,
        initiator_signature: str,
    ) -> Handshake:
        _require(
            initiator=initiator,
            responder=responder,
            initiator_kx_pubkey=initiator_kx_pubkey,
            initiator_signature=initiator_signature,
        )
        key = (initiator, responder)
        with self._lock:
            existing = self._records.get(key)
            if existing is not None:
                if existing.status == HandshakeStatus.COMPLETE:
                    logger.warning(
                        "[HANDSHAKE] init rejected, %s -> %s already complete",
                        _short(initiator), _short(responder),
                    )
                    raise ConflictError("active exchange already exists")
                logger.warning(
                    "[HANDSHAKE] re-init %s -> %s overwrites %s record",
                    _short(initiator), _short(responder), existing.status.value,
                )
            rec = Handshake(
                initiator=initiator,
                responder=responder,
                initiator_kx_pubkey=initiator_kx_pubkey,
                initiator_signature=initiator_signature,
                status=HandshakeStatus.INITIATED,
                created_at=self._clock(),
            )
            self._records[key] = rec
            logger.info("[HANDSHAKE] initiated %s -> %s", _short(initiator), _short(responder))
            return rec.model_copy()

    def pair(
        self,
        initiator: str,
        responder: str,
        encapsulated_secret: str,
        responder_signature: str,
    ) -> Handshake:
        _require(
            encapsulated_secret=encapsulated_secret,
            responder_signature=responder_signature,
        )
        with self._lock:
            rec = self._get_locked(initiator, responder)
            if rec.status != HandshakeStatus.INITIATED:
                logger.warning(
                    "[HANDSHAKE] pair rejected, %s -> %s is %s",
                    _short(initiator), _short(responder), rec.status.value,
                )
                raise InvalidStateError("not in Initiated state")
            rec = rec.model_copy(update={
                "responder_signature": responder_signature,
                "encapsulated_secret": encapsulated_secret,
                "paired_at": self._clock(),
                "status": HandshakeStatus.PAIRED,
            })
            self._records[(initiator, responder)] = rec
            logger.info("[HANDSHAKE] paired %s -> %s", _short(initiator), _short(responder))
            return rec.model_copy()

    def complete(self, initiator: str, responder: str) -> Handshake:
        with self._lock:
            rec = self._get_locked(initiator, responder)
            if rec.status != HandshakeStatus.PAIRED:
                logger.warning(
                    "[HANDSHAKE] complete rejected, %s -> %s is %s",
                    _short(initiator), _short(responder), rec.status.value,
                )
                raise InvalidStateError("not in Paired state")
            rec = rec.model_copy(update={
                "completed_at": self._clock(),
                "status": HandshakeStatus.COMPLETE,
            })
            self._records[(initiator, responder)] = rec
            logger.info("[HANDSHAKE] completed %s -> %s", _short(initiator), _short(responder))
            return rec.model_copy()

    def get(self, initiator: str, responder: str) -> Optional[Handshake]:
        with self._lock:
            rec = self._records.get((initiator, responder))
            return rec.model_copy() if rec is not None else None

    def list_by_responder_and_status(
        self, responder: str, status: HandshakeStatus
    ) -> List[HandshakeEntry]:
        """Snapshot of live records for `responder` in `status`. Order is unspecified."""
        with self._lock:
            matches = [
                HandshakeEntry(pair_key=key, handshake=rec.model_copy())
                for key, rec in self._records.items()
                if rec.responder == responder and rec.status == status
            ]
        logger.debug(
            "[HANDSHAKE] list %s for %s -> %d", status.value, _short(responder), len(matches)
        )
        return matches

    def sweep_expired(self, window: timedelta) -> int:
        """
        Drop INITIATED records created at or before now - window.

        Paired and completed records are never expired.
        Returns the number of records removed.
        """
        with self._lock:
            cutoff = self._clock() - window
            stale = [
                key for key, rec in self._records.items()
                if rec.status == HandshakeStatus.INITIATED and rec.created_at <= cutoff
            ]
            for key in stale:
                rec = self._records.pop(key)
                rec.status = HandshakeStatus.EXPIRED
                logger.info("[HANDSHAKE] expired %s -> %s", _short(key[0]), _short(key[1]))
            return len(stale)

    def count_by_status(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in HandshakeStatus if s != HandshakeStatus.EXPIRED}
        with self._lock:
            for rec in self._records.values():
                counts[rec.status.value] += 1
        return counts

    def _get_locked(self, initiator: str, responder: str) -> Handshake:
        rec = self._records.get((initiator, responder))
        if rec is None:
            raise NotFoundError("exchange not found")
        return rec


class MailboxStore:
    def __init__(self, clock: Optional[Clock] = None):
        self._mailboxes: Dict[str, List[Message]] = {}
        self._lock = threading.RLock()
        self._clock = clock or utc_now

    def store_message(self, from_pubkey: str, to_pubkey: str, ciphertext: str) -> Message:
        _require(from_pubkey=from_pubkey, to_pubkey=to_pubkey)
        with self._lock:
            msg = Message(
                from_pubkey=from_pubkey,
                to_pubkey=to_pubkey,
                ciphertext=ciphertext,
                timestamp=self._clock(),
            )
            self._mailboxes.setdefault(to_pubkey, []).append(msg)
        logger.info("[MAILBOX] stored message %s -> %s", _short(from_pubkey), _short(to_pubkey))
        return msg

    def fetch_messages(self, recipient: str) -> List[Message]:
        # Messages are frozen; a fresh list is enough to protect the mailbox.
        with self._lock:
            return list(self._mailboxes.get(recipient, []))

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "mailboxes": len(self._mailboxes),
                "messages": sum(len(v) for v in self._mailboxes.values()),
            }


class RelayState:
    """Process-lifetime state handed to every request handler."""

    def __init__(self, clock: Optional[Clock] = None):
        self.handshakes = HandshakeStore(clock)
        self.mailbox = MailboxStore(clock)
