"""Signature verification tests"""
import json
import pytest
import stripe
from unittest.mock import patch

from stripe_cli_demo.core.exceptions import (
    ConfigurationError,
    MalformedHeaderError,
    MalformedPayloadError,
    SignatureMismatchError,
    SignatureVerificationError,
    StaleTimestampError,
)
from stripe_cli_demo.schemas.events import EventStatus
from stripe_cli_demo.services.signature_service import (
    SignatureVerifier,
    compute_signature,
    generate_signature_header,
    parse_signature_header,
)

from conftest import TEST_WEBHOOK_SECRET, make_event

NOW = 1_700_000_000


@pytest.fixture(autouse=True)
def frozen_time():
    """Pin the clock the Stripe SDK reads for the tolerance check"""
    with patch("time.time", return_value=NOW):
        yield


@pytest.fixture
def verifier():
    return SignatureVerifier(tolerance=300)


def body_for(event):
    return json.dumps(event).encode("utf-8")


@pytest.mark.critical
class TestSignatureVerification:
    """Test the timestamped HMAC-SHA256 scheme"""

    @pytest.mark.parametrize("secret,body", [
        (TEST_WEBHOOK_SECRET, body_for(make_event())),
        ("whsec_other", body_for(make_event("evt_2", "charge.succeeded"))),
        ("s3cr3t", body_for(make_event("evt_3", "customer.created", obj={"name": "Zoë"}))),
    ])
    def test_valid_signature_verifies(self, verifier, secret, body):
        """A header built from the same secret, timestamp and body verifies"""
        header = generate_signature_header(body, secret, NOW)
        event = verifier.verify(body, header, secret)
        assert event.id == json.loads(body)["id"]
        assert event.status == EventStatus.RECEIVED

    def test_signature_matches_reference_computation(self):
        """Digest covers "{timestamp}.{body}" keyed with the secret"""
        import hashlib
        import hmac

        body = b'{"id": "evt_1"}'
        expected = hmac.new(b"whsec_x", b"1700000000." + body, hashlib.sha256).hexdigest()
        assert compute_signature(body, "whsec_x", NOW) == expected
        assert generate_signature_header(body, "whsec_x", NOW) == f"t={NOW},v1={expected}"

    def test_flipping_any_hex_digit_is_rejected(self, verifier):
        """Every single-character change to the digest causes a mismatch"""
        body = body_for(make_event())
        digest = compute_signature(body, TEST_WEBHOOK_SECRET, NOW)
        for position in range(len(digest)):
            flipped = "0" if digest[position] != "0" else "1"
            tampered = digest[:position] + flipped + digest[position + 1:]
            with pytest.raises(SignatureMismatchError):
                verifier.verify(body, f"t={NOW},v1={tampered}", TEST_WEBHOOK_SECRET)

    def test_wrong_secret_is_rejected(self, verifier):
        body = body_for(make_event())
        header = generate_signature_header(body, "whsec_attacker", NOW)
        with pytest.raises(SignatureMismatchError):
            verifier.verify(body, header, TEST_WEBHOOK_SECRET)

    def test_tampered_body_is_rejected(self, verifier):
        body = body_for(make_event())
        header = generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW)
        tampered = body.replace(b"pi_test123", b"pi_evil9999")
        with pytest.raises(SignatureMismatchError):
            verifier.verify(tampered, header, TEST_WEBHOOK_SECRET)

    def test_any_matching_v1_digest_is_accepted(self, verifier):
        """During secret rotation Stripe sends one digest per active secret"""
        body = body_for(make_event())
        good = compute_signature(body, TEST_WEBHOOK_SECRET, NOW)
        other = compute_signature(body, "whsec_rolled", NOW)
        header = f"t={NOW},v1={other},v1={good},v0=deadbeef"
        assert verifier.verify(body, header, TEST_WEBHOOK_SECRET).id == "evt_test123"

    def test_stripe_sdk_checks_the_signature(self, verifier):
        """HMAC and tolerance are left to stripe.WebhookSignature"""
        body = body_for(make_event())
        digest = compute_signature(body, TEST_WEBHOOK_SECRET, NOW)
        with patch.object(
            stripe.WebhookSignature, "verify_header", wraps=stripe.WebhookSignature.verify_header
        ) as sdk_verify:
            verifier.verify(body, f" t={NOW} , v1={digest} ", TEST_WEBHOOK_SECRET)

        sdk_verify.assert_called_once_with(
            body.decode("utf-8"), f"t={NOW},v1={digest}", TEST_WEBHOOK_SECRET, tolerance=300
        )

    def test_sdk_rejection_is_mapped(self, verifier):
        body = body_for(make_event())
        header = generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW)
        with patch.object(
            stripe.WebhookSignature, "verify_header",
            side_effect=stripe.SignatureVerificationError("No signatures found matching the expected signature for payload", header),
        ):
            with pytest.raises(SignatureMismatchError):
                verifier.verify(body, header, TEST_WEBHOOK_SECRET)

    def test_non_hex_digest_is_a_mismatch(self, verifier):
        body = body_for(make_event())
        with pytest.raises(SignatureMismatchError):
            verifier.verify(body, f"t={NOW},v1=zzzé", TEST_WEBHOOK_SECRET)

    def test_v0_digest_alone_is_not_enough(self, verifier):
        body = body_for(make_event())
        good = compute_signature(body, TEST_WEBHOOK_SECRET, NOW)
        with pytest.raises(MalformedHeaderError):
            verifier.verify(body, f"t={NOW},v0={good}", TEST_WEBHOOK_SECRET)

    def test_no_secret_raises_configuration_error(self, verifier):
        body = body_for(make_event())
        header = generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW)
        with pytest.raises(ConfigurationError):
            verifier.verify(body, header, "")

    def test_signature_errors_share_a_base_class(self):
        for error in (MalformedHeaderError, SignatureMismatchError, StaleTimestampError):
            assert issubclass(error, SignatureVerificationError)
            assert error.public_message == "Invalid signature"


@pytest.mark.critical
class TestSignatureHeaderParsing:
    """Test header parsing edge cases"""

    def test_parses_timestamp_and_digests(self):
        assert parse_signature_header("t=12,v1=aa,v1=bb") == (12, ["aa", "bb"])

    def test_tolerates_whitespace_and_unknown_items(self):
        assert parse_signature_header(" t=12 , v1=aa , foo , x=1") == (12, ["aa"])

    @pytest.mark.parametrize("header", [
        None,
        "",
        "garbage",
        "v1=abc",
        "t=123",
        "t=abc,v1=abc",
        "t=123,v1=",
    ])
    def test_malformed_headers(self, header):
        with pytest.raises(MalformedHeaderError):
            parse_signature_header(header)

    def test_malformed_header_is_checked_after_secret(self, verifier):
        with pytest.raises(ConfigurationError):
            verifier.verify(b"{}", "garbage", "")


@pytest.mark.critical
class TestTimestampTolerance:
    """Test replay protection"""

    def test_old_timestamp_is_rejected(self, verifier):
        body = body_for(make_event())
        header = generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW - 301)
        with pytest.raises(StaleTimestampError):
            verifier.verify(body, header, TEST_WEBHOOK_SECRET)

    def test_timestamp_at_edge_of_window_is_accepted(self, verifier):
        body = body_for(make_event())
        header = generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW - 300)
        assert verifier.verify(body, header, TEST_WEBHOOK_SECRET).id == "evt_test123"

    def test_zero_tolerance_disables_check(self):
        verifier = SignatureVerifier(tolerance=0)
        body = body_for(make_event())
        header = generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW - 86400)
        assert verifier.verify(body, header, TEST_WEBHOOK_SECRET).id == "evt_test123"

    def test_bad_signature_wins_over_stale_timestamp(self, verifier):
        body = body_for(make_event())
        with pytest.raises(SignatureMismatchError):
            verifier.verify(body, f"t={NOW - 10000},v1=00", TEST_WEBHOOK_SECRET)


@pytest.mark.critical
class TestPayloadParsing:
    """Test decoding of verified bodies"""

    def sign(self, body):
        return generate_signature_header(body, TEST_WEBHOOK_SECRET, NOW)

    def test_event_fields_are_extracted(self, verifier):
        body = body_for(make_event("evt_9", "checkout.session.completed", obj={"id": "cs_1", "mode": "payment"}))
        event = verifier.verify(body, self.sign(body), TEST_WEBHOOK_SECRET)
        assert event.id == "evt_9"
        assert event.type == "checkout.session.completed"
        assert event.payload == {"id": "cs_1", "mode": "payment"}
        assert event.received_at is not None
        assert event.entry_id

    def test_missing_data_object_gives_empty_payload(self, verifier):
        body = body_for({"id": "evt_1", "type": "ping"})
        assert verifier.verify(body, self.sign(body), TEST_WEBHOOK_SECRET).payload == {}

    @pytest.mark.parametrize("body", [
        b"not json",
        b"[1, 2, 3]",
        b"\xff\xfe",
        json.dumps({"type": "charge.succeeded"}).encode(),
        json.dumps({"id": "evt_1"}).encode(),
        json.dumps({"id": "", "type": "charge.succeeded"}).encode(),
        json.dumps({"id": 12, "type": "charge.succeeded"}).encode(),
    ])
    def test_malformed_payloads(self, verifier, body):
        with pytest.raises(MalformedPayloadError):
            verifier.verify(body, self.sign(body), TEST_WEBHOOK_SECRET)

    def test_unsigned_garbage_fails_on_signature_first(self, verifier):
        """The body is never parsed before the signature is accepted"""
        with pytest.raises(SignatureMismatchError):
            verifier.verify(b"not json", f"t={NOW},v1=00", TEST_WEBHOOK_SECRET)
