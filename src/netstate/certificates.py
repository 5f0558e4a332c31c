"""Client certificate selection by pattern, with an enrollment fallback.

A network configured with ``ClientCertType.PATTERN`` does not name its
certificate directly. Before connecting, :class:`CertificateMatcher` looks
for a certificate in the store that matches the pattern. If none exists and
an :class:`EnrollmentHandler` is configured, the handler takes over the
connection continuation and may run it much later, or never.

Classes:
    IssuerSubjectPattern: Distinguished-name criteria
    CertificatePattern: Issuer, subject and key-usage criteria plus enrollment URIs
    CertificateStore: Abstract certificate lookup
    InMemoryCertificateStore: Store backed by ``cryptography`` certificates
    EnrollmentHandler: Abstract enrollment collaborator
    Continuation: Single-fire, cancellable deferred callback
    CertificateMatcher: Pattern resolution
"""

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from netstate.exceptions import ContinuationError

if TYPE_CHECKING:
    from netstate.network import Network

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================


@dataclass
class IssuerSubjectPattern:
    """Distinguished-name criteria; empty fields match anything."""

    common_name: str = ""
    locality: str = ""
    organization: str = ""
    organizational_unit: str = ""

    def empty(self) -> bool:
        return not (self.common_name or self.locality or self.organization or self.organizational_unit)

    def matches(self, name: x509.Name) -> bool:
        """Check every non-empty criterion against ``name``.

        Organization and organizational unit match any of the values
        present in the name; common name and locality match the first.
        """
        if self.common_name and _first_value(name, NameOID.COMMON_NAME) != self.common_name:
            return False
        if self.locality and _first_value(name, NameOID.LOCALITY_NAME) != self.locality:
            return False
        if self.organization and self.organization not in _all_values(name, NameOID.ORGANIZATION_NAME):
            return False
        if self.organizational_unit and self.organizational_unit not in _all_values(
            name, NameOID.ORGANIZATIONAL_UNIT_NAME
        ):
            return False
        return True

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "IssuerSubjectPattern":
        data = data or {}
        return cls(
            common_name=str(data.get("CommonName", "")),
            locality=str(data.get("Locality", "")),
            organization=str(data.get("Organization", "")),
            organizational_unit=str(data.get("OrganizationalUnit", "")),
        )


def _all_values(name: x509.Name, oid: x509.ObjectIdentifier) -> list[str]:
    return [str(attr.value) for attr in name.get_attributes_for_oid(oid)]


def _first_value(name: x509.Name, oid: x509.ObjectIdentifier) -> Optional[str]:
    values = _all_values(name, oid)
    return values[0] if values else None


# KeyUsage attribute names accepted in a pattern, plus extended key usages
_EXTENDED_KEY_USAGES = {
    "client_auth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "server_auth": ExtendedKeyUsageOID.SERVER_AUTH,
    "email_protection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "code_signing": ExtendedKeyUsageOID.CODE_SIGNING,
}

_KEY_USAGES = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
)


@dataclass
class CertificatePattern:
    """Criteria used to pick a client certificate without naming it.

    Attributes:
        issuer: Issuer DN criteria.
        subject: Subject DN criteria.
        key_usage: Required usages, e.g. ``"digital_signature"`` or
            ``"client_auth"``.
        enrollment_uri_list: Where to enroll when no certificate matches.
    """

    issuer: IssuerSubjectPattern = field(default_factory=IssuerSubjectPattern)
    subject: IssuerSubjectPattern = field(default_factory=IssuerSubjectPattern)
    key_usage: frozenset[str] = frozenset()
    enrollment_uri_list: list[str] = field(default_factory=list)

    def empty(self) -> bool:
        """True when the pattern has no criteria at all."""
        return self.issuer.empty() and self.subject.empty() and not self.key_usage

    def matches(self, certificate: x509.Certificate) -> bool:
        if not self.issuer.matches(certificate.issuer):
            return False
        if not self.subject.matches(certificate.subject):
            return False
        return all(_has_usage(certificate, usage) for usage in self.key_usage)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "CertificatePattern":
        """Create from the ``ClientCertPattern`` property dictionary.

        Raises:
            ValueError: If a field has the wrong type.
        """
        data = data or {}
        uris = data.get("EnrollmentURI", [])
        usages = data.get("KeyUsage", [])
        if not isinstance(uris, (list, tuple)) or not isinstance(usages, (list, tuple)):
            raise ValueError("EnrollmentURI and KeyUsage must be lists")
        return cls(
            issuer=IssuerSubjectPattern.from_dict(data.get("Issuer")),
            subject=IssuerSubjectPattern.from_dict(data.get("Subject")),
            key_usage=frozenset(str(u) for u in usages),
            enrollment_uri_list=[str(u) for u in uris],
        )


def _has_usage(certificate: x509.Certificate, usage: str) -> bool:
    if usage in _KEY_USAGES:
        try:
            key_usage = certificate.extensions.get_extension_for_class(x509.KeyUsage).value
        except x509.ExtensionNotFound:
            return False
        return bool(getattr(key_usage, usage))

    oid = _EXTENDED_KEY_USAGES.get(usage)
    if oid is None:
        logger.warning("Unknown key usage in certificate pattern: %s", usage)
        return False
    try:
        extended = certificate.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return False
    return oid in extended


# =============================================================================
# Collaborators
# =============================================================================


class CertificateStore(abc.ABC):
    """Lookup of client certificates available to the user."""

    @abc.abstractmethod
    def find_match(self, pattern: CertificatePattern) -> Optional[x509.Certificate]:
        """Best certificate matching ``pattern``, or None."""
        pass

    @abc.abstractmethod
    def id_of(self, certificate: x509.Certificate) -> str:
        """Store-specific identifier written to the network's client-cert id."""
        pass


class InMemoryCertificateStore(CertificateStore):
    """Certificate store holding ``cryptography`` certificate objects.

    Only certificates valid at lookup time are considered; among several
    matches the one expiring last wins. Identifiers are the hex subject
    key identifier derived from the public key.
    """

    def __init__(
        self,
        certificates: Iterable[x509.Certificate] = (),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._certificates = list(certificates)
        self._clock = clock

    def add(self, certificate: x509.Certificate) -> None:
        self._certificates.append(certificate)

    @classmethod
    def from_pem(cls, data: bytes) -> "InMemoryCertificateStore":
        """Load every certificate from a PEM bundle."""
        return cls(x509.load_pem_x509_certificates(data))

    def find_match(self, pattern: CertificatePattern) -> Optional[x509.Certificate]:
        now = self._clock()
        candidates = [
            cert
            for cert in self._certificates
            if cert.not_valid_before_utc <= now <= cert.not_valid_after_utc and pattern.matches(cert)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda cert: cert.not_valid_after_utc)

    def id_of(self, certificate: x509.Certificate) -> str:
        ski = x509.SubjectKeyIdentifier.from_public_key(certificate.public_key())
        return ski.digest.hex().upper()

    def __len__(self) -> int:
        return len(self._certificates)


class Continuation:
    """Single-fire, cancellable deferred callback.

    The connection flow hands one of these to whoever decides when the
    connection may proceed. Running it twice is a programming error;
    running it after :meth:`cancel` does nothing.

    Example:
        >>> continuation = Continuation(lambda: print("connect"), name="wifi1")
        >>> continuation.run()
        connect
        True
        >>> continuation.done
        True
    """

    def __init__(self, callback: Callable[[], Any], name: str = "") -> None:
        self._callback = callback
        self.name = name
        self._fired = False
        self._cancelled = False
        self._future: Optional[asyncio.Future] = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._fired or self._cancelled

    def run(self) -> bool:
        """Invoke the callback.

        Returns:
            True if the callback ran, False if the continuation was cancelled.

        Raises:
            ContinuationError: If the continuation already ran.
        """
        if self._cancelled:
            logger.info("Continuation %s cancelled, not running", self.name)
            return False
        if self._fired:
            logger.warning("Continuation %s invoked more than once", self.name)
            raise ContinuationError("Continuation already invoked", self.name)
        self._fired = True
        try:
            self._callback()
        finally:
            self._resolve(True)
        return True

    def cancel(self) -> bool:
        """Abandon the continuation (for example the user aborted enrollment).

        Returns:
            True if it was pending, False if it had already completed.
        """
        if self.done:
            return False
        self._cancelled = True
        logger.info("Continuation %s cancelled", self.name)
        self._resolve(False)
        return True

    async def wait(self) -> bool:
        """Wait until the continuation runs or is cancelled.

        Returns:
            True if it ran, False if it was cancelled.
        """
        if self.done:
            return self._fired
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return await self._future

    def _resolve(self, result: bool) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_result(result)

    def __repr__(self) -> str:
        status = "fired" if self._fired else "cancelled" if self._cancelled else "pending"
        return f"Continuation({self.name!r}, {status})"


class EnrollmentHandler(abc.ABC):
    """Collaborator that obtains a certificate when none matches.

    The handler becomes the sole owner of the continuation: it runs it when
    enrollment completes, or cancels it if the user gives up.
    """

    @abc.abstractmethod
    def enroll(self, uri_list: list[str], continuation: Continuation) -> None:
        pass


# =============================================================================
# Matcher
# =============================================================================


class CertificateMatcher:
    """Resolves a network's certificate pattern before connecting."""

    def __init__(
        self,
        store: Optional[CertificateStore] = None,
        enrollment_handler: Optional[EnrollmentHandler] = None,
    ) -> None:
        self.store = store
        self.enrollment_handler = enrollment_handler

    def resolve(self, network: "Network", on_resolved: Callable[[], Any]) -> Continuation:
        """Resolve the network's client certificate, then continue.

        Args:
            network: Wifi or VPN network with a client certificate pattern.
            on_resolved: Called once the connection may proceed.

        Returns:
            The continuation wrapping ``on_resolved``. It has already run
            unless enrollment took it over.
        """
        continuation = Continuation(on_resolved, name=network.service_path)
        pattern: CertificatePattern = network.client_cert_pattern

        if pattern.empty():
            continuation.run()
            return continuation

        certificate = self.store.find_match(pattern) if self.store is not None else None
        if certificate is not None:
            cert_id = self.store.id_of(certificate)
            logger.debug("%s matched client certificate %s", network.service_path, cert_id)
            network.set_client_cert_id(cert_id)
        elif self.enrollment_handler is not None:
            logger.info("%s has no matching certificate, starting enrollment", network.service_path)
            self.enrollment_handler.enroll(list(pattern.enrollment_uri_list), continuation)
            return continuation
        else:
            logger.debug("%s has no matching certificate and no enrollment handler", network.service_path)

        continuation.run()
        return continuation
