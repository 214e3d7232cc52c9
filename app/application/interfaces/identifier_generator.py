"""Interface IdentifierGenerator - port for reservation codes and record ids."""

import secrets
import uuid
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable

from app.domain.value_objects.reservation_code import (
    BOOKING_REFERENCE_ALPHABET,
    BOOKING_REFERENCE_LENGTH,
    RESERVATION_CODE_ALPHABET,
    RESERVATION_CODE_LENGTH,
)


class IdentifierGenerator(ABC):
    """
    Generates the identifiers of a new reservation.

    Codes are random, not unique by construction: uniqueness is enforced by the
    repository and a collision triggers a regeneration.
    """

    @abstractmethod
    def new_id(self) -> str:
        """Internal primary key."""
        raise NotImplementedError

    @abstractmethod
    def new_reservation_code(self) -> str:
        """6 characters from RESERVATION_CODE_ALPHABET."""
        raise NotImplementedError

    @abstractmethod
    def new_booking_reference(self) -> str:
        """8 characters from A-Z0-9."""
        raise NotImplementedError


class SecureIdentifierGenerator(IdentifierGenerator):
    """Cryptographically random identifiers (``secrets``)."""

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def new_reservation_code(self) -> str:
        return "".join(secrets.choice(RESERVATION_CODE_ALPHABET) for _ in range(RESERVATION_CODE_LENGTH))

    def new_booking_reference(self) -> str:
        return "".join(secrets.choice(BOOKING_REFERENCE_ALPHABET) for _ in range(BOOKING_REFERENCE_LENGTH))


class FakeIdentifierGenerator(IdentifierGenerator):
    """
    Predictable identifiers for tests.

    Scripted codes are handed out first, which lets a test force a collision by
    queueing a code that is already taken. Once the script runs out, codes are
    derived from a counter and stay within the production alphabets.
    """

    def __init__(
        self,
        reservation_codes: Iterable[str] = (),
        booking_references: Iterable[str] = (),
    ):
        self._codes = deque(reservation_codes)
        self._references = deque(booking_references)
        self._id_counter = 0
        self._code_counter = 0
        self._reference_counter = 0

    def queue_reservation_codes(self, *codes: str) -> None:
        self._codes.extend(codes)

    def queue_booking_references(self, *references: str) -> None:
        self._references.extend(references)

    def new_id(self) -> str:
        self._id_counter += 1
        return f"{self._id_counter:032x}"

    def new_reservation_code(self) -> str:
        if self._codes:
            return self._codes.popleft()
        self._code_counter += 1
        return _encode(self._code_counter, RESERVATION_CODE_ALPHABET, RESERVATION_CODE_LENGTH)

    def new_booking_reference(self) -> str:
        if self._references:
            return self._references.popleft()
        self._reference_counter += 1
        return _encode(self._reference_counter, BOOKING_REFERENCE_ALPHABET, BOOKING_REFERENCE_LENGTH)


def _encode(number: int, alphabet: str, length: int) -> str:
    chars = []
    for _ in range(length):
        number, remainder = divmod(number, len(alphabet))
        chars.append(alphabet[remainder])
    return "".join(reversed(chars))
