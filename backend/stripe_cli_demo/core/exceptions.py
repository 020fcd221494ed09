"""Exception types for webhook verification and event storage

Every exception carries the message that is safe to return to the caller in
the JSON ``error`` field. The detailed reason is passed as the exception
argument and only ends up in the logs.
"""


class WebhookError(Exception):
    """Base class for rejected webhook requests (HTTP 400)"""

    status_code = 400
    public_message = "Invalid request"

    def __init__(self, reason: str = ""):
        super().__init__(reason or self.public_message)
        self.reason = reason or self.public_message


class ConfigurationError(WebhookError):
    """No webhook signing secret is configured"""

    public_message = (
        "Webhook secret not configured. Run `stripe listen` and save the "
        "whsec_ secret it prints in the settings."
    )


class SignatureVerificationError(WebhookError):
    """The request could not be authenticated"""

    public_message = "Invalid signature"


class MalformedHeaderError(SignatureVerificationError):
    """Signature header has no timestamp or no v1 digest"""


class SignatureMismatchError(SignatureVerificationError):
    """None of the supplied digests match the expected HMAC"""


class StaleTimestampError(SignatureVerificationError):
    """Signed timestamp is older than the tolerance window"""


class MalformedPayloadError(WebhookError):
    """Body is not a JSON event with an id and a type"""

    public_message = "Invalid payload"


class StorageUnavailableError(Exception):
    """The option store (Redis) could not be read or written"""

    status_code = 500
    public_message = "Event storage unavailable"
