"""Unit tests for certificate patterns, continuations and the matcher."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import ExtendedKeyUsageOID

from conftest import make_certificate
from netstate.certificates import (
    CertificateMatcher,
    CertificatePattern,
    CertificateStore,
    Continuation,
    EnrollmentHandler,
    InMemoryCertificateStore,
    IssuerSubjectPattern,
)
from netstate.exceptions import ContinuationError
from netstate.models import ClientCertType
from netstate.network import WifiNetwork


class RecordingEnrollment(EnrollmentHandler):
    """Enrollment handler that keeps the continuation it was given."""

    def __init__(self):
        self.calls = []

    def enroll(self, uri_list, continuation):
        self.calls.append((uri_list, continuation))


def pattern_network(context, pattern):
    wifi = WifiNetwork("/service/wifi_eap", context)
    wifi.client_cert_type = ClientCertType.PATTERN
    wifi.client_cert_pattern = pattern
    return wifi


class TestIssuerSubjectPattern:
    """Tests for distinguished-name matching."""

    def test_empty_matches_anything(self, client_certificate):
        pattern = IssuerSubjectPattern()
        assert pattern.empty()
        assert pattern.matches(client_certificate.subject)

    def test_common_name(self, client_certificate):
        assert IssuerSubjectPattern(common_name="alice").matches(client_certificate.subject)
        assert not IssuerSubjectPattern(common_name="bob").matches(client_certificate.subject)

    def test_organizational_unit(self, client_certificate):
        assert IssuerSubjectPattern(organizational_unit="Engineering").matches(client_certificate.subject)
        assert not IssuerSubjectPattern(organizational_unit="Sales").matches(client_certificate.subject)

    def test_from_dict(self):
        pattern = IssuerSubjectPattern.from_dict({"CommonName": "Example CA", "Organization": "Example Org"})
        assert pattern.common_name == "Example CA"
        assert pattern.organization == "Example Org"


class TestCertificatePattern:
    """Tests for CertificatePattern."""

    def test_empty(self):
        assert CertificatePattern().empty()
        assert CertificatePattern.from_dict(None).empty()

    def test_enrollment_uris_do_not_count_as_criteria(self):
        pattern = CertificatePattern(enrollment_uri_list=["https://enroll.example"])
        assert pattern.empty()

    def test_issuer_and_subject(self, client_certificate):
        pattern = CertificatePattern.from_dict(
            {"Issuer": {"CommonName": "Example CA"}, "Subject": {"CommonName": "alice"}}
        )
        assert pattern.matches(client_certificate)

    def test_key_usage(self, client_certificate):
        pattern = CertificatePattern(key_usage=frozenset({"digital_signature", "client_auth"}))
        assert pattern.matches(client_certificate)

    def test_missing_extended_usage(self):
        certificate = make_certificate("alice", extended_usages=())
        pattern = CertificatePattern(key_usage=frozenset({"client_auth"}))
        assert not pattern.matches(certificate)

    def test_wrong_extended_usage(self):
        certificate = make_certificate("alice", extended_usages=(ExtendedKeyUsageOID.SERVER_AUTH,))
        pattern = CertificatePattern(key_usage=frozenset({"client_auth"}))
        assert not pattern.matches(certificate)

    def test_unknown_usage_never_matches(self, client_certificate):
        pattern = CertificatePattern(key_usage=frozenset({"time_travel"}))
        assert not pattern.matches(client_certificate)

    def test_from_dict_rejects_non_list(self):
        with pytest.raises(ValueError):
            CertificatePattern.from_dict({"KeyUsage": "client_auth"})


class TestInMemoryCertificateStore:
    """Tests for InMemoryCertificateStore."""

    def test_finds_valid_match(self, client_certificate):
        store = InMemoryCertificateStore([client_certificate])
        pattern = CertificatePattern(subject=IssuerSubjectPattern(common_name="alice"))
        assert store.find_match(pattern) is client_certificate

    def test_expired_not_matched(self):
        expired = make_certificate(
            "alice",
            not_before=datetime.now(timezone.utc) - timedelta(days=30),
            lifetime=timedelta(days=10),
        )
        store = InMemoryCertificateStore([expired])
        assert store.find_match(CertificatePattern(subject=IssuerSubjectPattern(common_name="alice"))) is None

    def test_latest_expiry_wins(self):
        short = make_certificate("alice", lifetime=timedelta(days=30))
        long = make_certificate("alice", lifetime=timedelta(days=700))
        store = InMemoryCertificateStore([short, long])
        assert store.find_match(CertificatePattern(subject=IssuerSubjectPattern(common_name="alice"))) is long

    def test_id_is_stable_hex(self, client_certificate):
        store = InMemoryCertificateStore([client_certificate])
        cert_id = store.id_of(client_certificate)
        assert cert_id == store.id_of(client_certificate)
        assert cert_id == cert_id.upper()
        int(cert_id, 16)

    def test_from_pem(self, client_certificate):
        other = make_certificate("bob")
        bundle = client_certificate.public_bytes(Encoding.PEM) + other.public_bytes(Encoding.PEM)
        store = InMemoryCertificateStore.from_pem(bundle)
        assert len(store) == 2


class TestContinuation:
    """Tests for Continuation."""

    def test_run_once(self):
        callback = MagicMock()
        continuation = Continuation(callback, name="wifi")

        assert continuation.run()

        callback.assert_called_once_with()
        assert continuation.fired
        assert continuation.done

    def test_run_twice_raises(self):
        """Test a second run is reported, not silently repeated."""
        callback = MagicMock()
        continuation = Continuation(callback)
        continuation.run()

        with pytest.raises(ContinuationError):
            continuation.run()
        callback.assert_called_once_with()

    def test_cancel_then_run(self):
        callback = MagicMock()
        continuation = Continuation(callback)

        assert continuation.cancel()
        assert not continuation.run()

        callback.assert_not_called()
        assert continuation.cancelled

    def test_cancel_after_run(self):
        continuation = Continuation(MagicMock())
        continuation.run()
        assert not continuation.cancel()

    @pytest.mark.asyncio
    async def test_wait_resolves_on_run(self):
        continuation = Continuation(MagicMock())
        waiter = asyncio.ensure_future(continuation.wait())
        await asyncio.sleep(0)

        continuation.run()

        assert await waiter is True

    @pytest.mark.asyncio
    async def test_wait_resolves_on_cancel(self):
        continuation = Continuation(MagicMock())
        waiter = asyncio.ensure_future(continuation.wait())
        await asyncio.sleep(0)

        continuation.cancel()

        assert await waiter is False

    @pytest.mark.asyncio
    async def test_wait_after_done(self):
        continuation = Continuation(MagicMock())
        continuation.run()
        assert await continuation.wait() is True


class TestCertificateMatcher:
    """Tests for CertificateMatcher.resolve()."""

    def test_empty_pattern_runs_without_store_query(self, context):
        """Test an empty pattern continues synchronously and never queries the store."""
        store = MagicMock(spec=CertificateStore)
        on_resolved = MagicMock()
        network = pattern_network(context, CertificatePattern())

        continuation = CertificateMatcher(store).resolve(network, on_resolved)

        on_resolved.assert_called_once_with()
        assert continuation.fired
        store.find_match.assert_not_called()
        store.id_of.assert_not_called()

    def test_match_sets_cert_id_before_continuing(self, context, transport, client_certificate):
        """Test the client cert id is written before the connection proceeds."""
        store = InMemoryCertificateStore([client_certificate])
        expected_id = store.id_of(client_certificate)
        network = pattern_network(
            context, CertificatePattern(subject=IssuerSubjectPattern(common_name="alice"))
        )
        seen = []

        CertificateMatcher(store).resolve(network, lambda: seen.append(network.eap_client_cert_id))

        assert seen == [expected_id]
        assert transport.last_value("/service/wifi_eap", "EAP.CertID") == expected_id

    def test_no_match_hands_continuation_to_enrollment(self, context):
        """Test the matcher does not run the continuation when enrollment takes it."""
        enrollment = RecordingEnrollment()
        on_resolved = MagicMock()
        pattern = CertificatePattern(
            subject=IssuerSubjectPattern(common_name="nobody"),
            enrollment_uri_list=["https://enroll.example/start"],
        )
        network = pattern_network(context, pattern)

        continuation = CertificateMatcher(InMemoryCertificateStore(), enrollment).resolve(network, on_resolved)

        on_resolved.assert_not_called()
        assert not continuation.done
        assert enrollment.calls == [(["https://enroll.example/start"], continuation)]

        enrollment.calls[0][1].run()
        on_resolved.assert_called_once_with()

    def test_enrollment_abandoned(self, context):
        enrollment = RecordingEnrollment()
        on_resolved = MagicMock()
        network = pattern_network(context, CertificatePattern(subject=IssuerSubjectPattern(common_name="nobody")))

        continuation = CertificateMatcher(InMemoryCertificateStore(), enrollment).resolve(network, on_resolved)
        continuation.cancel()
        continuation.run()

        on_resolved.assert_not_called()

    def test_no_match_without_enrollment_continues(self, context):
        on_resolved = MagicMock()
        network = pattern_network(context, CertificatePattern(subject=IssuerSubjectPattern(common_name="nobody")))

        continuation = CertificateMatcher(InMemoryCertificateStore()).resolve(network, on_resolved)

        on_resolved.assert_called_once_with()
        assert continuation.fired
        assert network.eap_client_cert_id == ""

    def test_attempt_connection_without_pattern(self, context):
        """Test networks without a pattern connect without the matcher."""
        on_resolved = MagicMock()
        network = WifiNetwork("/service/wifi", context)

        continuation = network.attempt_connection(on_resolved)

        on_resolved.assert_called_once_with()
        assert continuation.fired
