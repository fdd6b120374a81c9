"""
Pairing handshake for fastshare.

The handshake classes are pure state machines: they consume control frames
received from the relay and return the frames to send back, leaving all I/O
to the transfer drivers. Each inbound frame is handled to completion before
the next one is looked at.

Sender:
    AWAIT_PAIR_CODE --pairCode--> AWAIT_PEER_INFO --receiverInfo--> TRANSFERRING

Receiver:
    AWAIT_PEER_INFO --senderInfo--> AWAIT_SIZE --size--> TRANSFERRING

Any unexpected frame, bad payload or failed signature moves the session to
FAILED and raises.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from .cipher import ChunkCipher, ciphertext_size
from .crypto import derive_session_key
from .frames import (
    TextFrame,
    decode_text_frame,
    encode_client_info_frame,
    encode_size_frame,
    parse_client_info,
    parse_count,
    parse_pair_code,
)
from .keys import KeyMaterial
from .models import ClientInfo, Role, Session, SessionState
from .signature import sign_client_info, verify_client_info
from .types import (
    PAIR_CODE_LENGTH,
    ROUTE_PAIR_CODE,
    ROUTE_RECEIVER_INFO,
    ROUTE_SENDER_INFO,
    ROUTE_SIZE,
    FastShareError,
    InvalidPairCodeError,
    ProtocolViolationError,
    SignatureInvalidError,
)

logger = logging.getLogger(__name__)


def split_share_pair_code(share_pair_code: str) -> Tuple[str, str]:
    """
    Split the receiver's combined code into share code and pair code.

    Args:
        share_pair_code: Share code with the relay's pair code appended

    Returns:
        Tuple of (share_code, pair_code)

    Raises:
        InvalidPairCodeError: If there is no share code left after removing
            the pair code suffix
    """
    if len(share_pair_code) <= PAIR_CODE_LENGTH:
        raise InvalidPairCodeError(
            f"Pair code must be longer than {PAIR_CODE_LENGTH} characters"
        )

    split = len(share_pair_code) - PAIR_CODE_LENGTH
    return share_pair_code[:split], share_pair_code[split:]


class Handshake(ABC):
    """Common handshake state and transitions."""

    role: Role
    initial_state: SessionState

    def __init__(self, share_code: str, key_material: Optional[KeyMaterial] = None) -> None:
        key_material = key_material or KeyMaterial.create()
        self._session = Session(
            role=self.role,
            share_code=share_code,
            key_material=key_material,
            state=self.initial_state,
        )
        self._own_info = sign_client_info(share_code, key_material)
        self._cipher: Optional[ChunkCipher] = None

    @property
    def session(self) -> Session:
        """The session being negotiated."""
        return self._session

    @property
    def state(self) -> SessionState:
        """Current handshake state."""
        return self._session.state

    @property
    def share_code(self) -> str:
        """The bare share code."""
        return self._session.share_code

    @property
    def own_info(self) -> ClientInfo:
        """Our signed ClientInfo."""
        return self._own_info

    @property
    def cipher(self) -> ChunkCipher:
        """The chunk cipher, available once the session key is derived."""
        if self._cipher is None:
            raise ProtocolViolationError("Session key not derived yet")
        return self._cipher

    def handle_text(self, message: str) -> List[str]:
        """
        Process one inbound control frame.

        Args:
            message: The raw text frame

        Returns:
            Text frames to send in reply, in order

        Raises:
            FastShareError: On any protocol or authentication failure; the
                session is FAILED afterwards
        """
        if self.state.is_terminal:
            raise ProtocolViolationError(f"Session already {self.state.value}")

        try:
            frame = decode_text_frame(message)
            handler = self._handlers().get(self.state)
            if handler is None:
                raise ProtocolViolationError(
                    f"Unexpected {frame.route} message in state {self.state.value}"
                )
            expected_route, handle = handler
            if frame.route != expected_route:
                raise ProtocolViolationError(
                    f"Unexpected message route: {frame.route} (expected {expected_route})"
                )
            return handle(frame)
        except FastShareError:
            self.fail()
            raise

    def accept_binary(self) -> None:
        """
        Check that a binary data frame is allowed now.

        Raises:
            ProtocolViolationError: If the handshake has not completed
        """
        if self.state is not SessionState.TRANSFERRING:
            self.fail()
            raise ProtocolViolationError("Unexpected binary message before transfer")

    def finish(self) -> None:
        """Mark the transfer as completed and release the key."""
        if self.state is SessionState.TRANSFERRING:
            self._transition(SessionState.CLOSED)
        self._wipe()

    def fail(self) -> None:
        """Mark the session as failed and release the key."""
        if self.state is not SessionState.FAILED:
            self._transition(SessionState.FAILED)
        self._wipe()

    @abstractmethod
    def _handlers(self) -> Dict[SessionState, Tuple[str, Callable[[TextFrame], List[str]]]]:
        """Map each waiting state to its expected route and handler."""
        ...

    def _accept_peer(self, info: ClientInfo) -> None:
        """Verify the peer's ClientInfo and derive the session key."""
        if not verify_client_info(self.share_code, info):
            raise SignatureInvalidError("Invalid peer signature")

        self._session.peer_info = info
        key = derive_session_key(
            self.share_code,
            self._session.key_material.private_key,
            info.pub_key,
        )
        try:
            self._cipher = ChunkCipher(bytes(key), self.share_code)
        finally:
            for i in range(len(key)):
                key[i] = 0
        logger.info("%s verified peer", self.role.value.capitalize())

    def _transition(self, state: SessionState) -> None:
        logger.debug("%s: %s -> %s", self.role.value, self.state.value, state.value)
        self._session.state = state

    def _wipe(self) -> None:
        if self._cipher is not None:
            self._cipher.wipe()


class SenderHandshake(Handshake):
    """Handshake for the peer that sends the payload."""

    role = Role.SENDER
    initial_state = SessionState.AWAIT_PAIR_CODE

    def __init__(
        self,
        share_code: str,
        size: int,
        key_material: Optional[KeyMaterial] = None,
    ) -> None:
        if size < 0:
            raise ValueError(f"Size must be non-negative, got {size}")
        super().__init__(share_code, key_material)
        self._session.declared_size = size
        self._pair_code: Optional[str] = None

    @property
    def pair_code(self) -> Optional[str]:
        """The pair code assigned by the relay."""
        return self._pair_code

    @property
    def display_code(self) -> Optional[str]:
        """Share code with pair code appended, for the receiver to type in."""
        if self._pair_code is None:
            return None
        return self.share_code + self._pair_code

    def _handlers(self):
        return {
            SessionState.AWAIT_PAIR_CODE: (ROUTE_PAIR_CODE, self._on_pair_code),
            SessionState.AWAIT_PEER_INFO: (ROUTE_RECEIVER_INFO, self._on_receiver_info),
        }

    def _on_pair_code(self, frame: TextFrame) -> List[str]:
        self._pair_code = parse_pair_code(frame)
        logger.info("Share code: %s", self.display_code)
        self._transition(SessionState.AWAIT_PEER_INFO)
        return []

    def _on_receiver_info(self, frame: TextFrame) -> List[str]:
        self._accept_peer(parse_client_info(frame))
        self._transition(SessionState.TRANSFERRING)
        return [encode_size_frame(self._session.declared_size)]


class ReceiverHandshake(Handshake):
    """Handshake for the peer that receives the payload."""

    role = Role.RECEIVER
    initial_state = SessionState.AWAIT_PEER_INFO

    def __init__(
        self,
        share_pair_code: str,
        key_material: Optional[KeyMaterial] = None,
    ) -> None:
        share_code, pair_code = split_share_pair_code(share_pair_code)
        super().__init__(share_code, key_material)
        self._pair_code = pair_code
        self._expected_ciphertext_size: Optional[int] = None

    @property
    def pair_code(self) -> str:
        """The pair code identifying the sender at the relay."""
        return self._pair_code

    @property
    def expected_ciphertext_size(self) -> Optional[int]:
        """Total ciphertext bytes for the declared size, once known."""
        return self._expected_ciphertext_size

    def _handlers(self):
        return {
            SessionState.AWAIT_PEER_INFO: (ROUTE_SENDER_INFO, self._on_sender_info),
            SessionState.AWAIT_SIZE: (ROUTE_SIZE, self._on_size),
        }

    def _on_sender_info(self, frame: TextFrame) -> List[str]:
        self._accept_peer(parse_client_info(frame))
        self._transition(SessionState.AWAIT_SIZE)
        return [encode_client_info_frame(ROUTE_RECEIVER_INFO, self.own_info)]

    def _on_size(self, frame: TextFrame) -> List[str]:
        size = parse_count(frame)
        self._session.declared_size = size
        self._expected_ciphertext_size = ciphertext_size(size)
        logger.info("Receiving %d bytes", size)
        self._transition(SessionState.TRANSFERRING)
        return []
