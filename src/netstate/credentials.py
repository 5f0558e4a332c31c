"""Credential storage with explicit secure erasure.

Secrets (passphrases, PINs, private-key identifiers) are held in mutable
``bytearray`` buffers so that they can be overwritten in place with zero
bytes before being released, instead of being left to garbage collection.

Example:
    >>> vault = CredentialVault(("passphrase", "eap_passphrase"))
    >>> vault.set("passphrase", "hunter22")
    >>> vault.get("passphrase")
    'hunter22'
    >>> vault.erase_all()
    >>> vault.get("passphrase")
    ''
"""

import hmac
import logging
from typing import Dict, Iterable, Iterator, Tuple

logger = logging.getLogger(__name__)


def secure_erase(data: bytearray) -> None:
    """Overwrite a buffer with zero bytes in place.

    Note:
        This is a best-effort operation. Python may have made copies of
        the data (for example decoded ``str`` values handed to callers)
        that cannot be reached from here.

    Args:
        data: Bytearray to erase (must be mutable).

    Raises:
        TypeError: If ``data`` is not a bytearray.
    """
    if not isinstance(data, bytearray):
        raise TypeError("Data must be a bytearray for in-place modification")

    for i in range(len(data)):
        data[i] = 0


class SecretString:
    """A UTF-8 secret backed by an erasable buffer.

    Replacing the value erases the previous buffer first; ``erase()``
    zero-fills the buffer with as many bytes as it held and then empties it.
    """

    __slots__ = ("_buffer",)

    buffer_type = bytearray

    def __init__(self, value: str = "") -> None:
        self._buffer = self.buffer_type(value.encode("utf-8"))

    def get(self) -> str:
        return self._buffer.decode("utf-8")

    def set(self, value: str) -> None:
        """Replace the secret, erasing the old content first."""
        self.erase()
        self._buffer.extend(value.encode("utf-8"))

    def erase(self) -> None:
        """Zero-fill then clear the backing buffer. Idempotent."""
        secure_erase(self._buffer)
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)

    def __bool__(self) -> bool:
        return len(self._buffer) > 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretString):
            return hmac.compare_digest(bytes(self._buffer), bytes(other._buffer))
        return NotImplemented

    def __repr__(self) -> str:
        return f"SecretString(<{len(self._buffer)} bytes>)"

    def __deepcopy__(self, memo: dict) -> "SecretString":
        copy = self.__class__()
        copy._buffer.extend(self._buffer)
        return copy


class CredentialVault:
    """Named set of secret fields owned by one entity.

    Each field is created empty; ``set`` stores a value and marks the
    field present; ``erase_all`` wipes every field, including the ones
    that were never set.
    """

    def __init__(self, field_names: Iterable[str] = ()) -> None:
        self._fields: Dict[str, SecretString] = {name: SecretString() for name in field_names}
        self._present: Dict[str, bool] = {name: False for name in self._fields}

    def add_field(self, name: str) -> None:
        if name not in self._fields:
            self._fields[name] = SecretString()
            self._present[name] = False

    def set(self, name: str, value: str) -> None:
        """Store ``value`` in the named field and mark it present.

        Raises:
            KeyError: If the field was never declared.
        """
        self._fields[name].set(value)
        self._present[name] = True

    def get(self, name: str) -> str:
        return self._fields[name].get()

    def secret(self, name: str) -> SecretString:
        return self._fields[name]

    def is_present(self, name: str) -> bool:
        return self._present.get(name, False)

    def erase(self, name: str) -> None:
        self._fields[name].erase()
        self._present[name] = False

    def erase_all(self) -> None:
        """Securely erase every field. Never fails, safe to repeat."""
        for name in self._fields:
            self.erase(name)
        logger.debug("Erased %d credential fields", len(self._fields))

    def field_names(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def __iter__(self) -> Iterator[Tuple[str, SecretString]]:
        return iter(self._fields.items())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CredentialVault):
            return self._fields == other._fields and self._present == other._present
        return NotImplemented

    def __repr__(self) -> str:
        present = [name for name, flag in self._present.items() if flag]
        return f"CredentialVault(fields={list(self._fields)}, present={present})"
