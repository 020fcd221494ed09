"""Settings service - Stripe credentials kept in the option store"""
import logging
from typing import Any, Dict, Optional

import stripe

from stripe_cli_demo.core.config import settings, WEBHOOK_PATH

logger = logging.getLogger(__name__)

PUBLISHABLE_KEY_OPTION = "publishable_key"
SECRET_KEY_OPTION = "secret_key"
WEBHOOK_SECRET_OPTION = "webhook_secret"

# option name -> (required prefix, label, environment fallback attribute)
CREDENTIALS = {
    PUBLISHABLE_KEY_OPTION: ("pk_test_", "Publishable key", "STRIPE_PUBLISHABLE_KEY"),
    SECRET_KEY_OPTION: ("sk_test_", "Secret key", "STRIPE_SECRET_KEY"),
    WEBHOOK_SECRET_OPTION: ("whsec_", "Webhook secret", "STRIPE_WEBHOOK_SECRET"),
}


def mask_secret(value: str, prefix: str = "", visible: int = 4) -> str:
    """Show the key prefix and the last few characters only"""
    if not value:
        return ""
    head = prefix if prefix and value.startswith(prefix) else ""
    return f"{head}...{value[-visible:]}"


def validate_credential(option: str, value: Optional[str]) -> str:
    """Strip and check a credential, raising ValueError with an operator-facing message"""
    required_prefix, label, _ = CREDENTIALS[option]
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    if not value.startswith(required_prefix):
        raise ValueError(f"{label} must start with {required_prefix}")
    return value


class SettingsService:
    """Reads and writes the Stripe credentials

    Values saved through the operator API live in the option store; the
    STRIPE_* environment settings act as defaults.
    """

    def __init__(self, store):
        self.store = store

    def get_credential(self, option: str) -> str:
        _, _, env_attr = CREDENTIALS[option]
        value = self.store.get(option)
        if value:
            return value
        return getattr(settings, env_attr, "") or ""

    def get_webhook_secret(self) -> str:
        return self.get_credential(WEBHOOK_SECRET_OPTION)

    def get_secret_key(self) -> str:
        return self.get_credential(SECRET_KEY_OPTION)

    def get_publishable_key(self) -> str:
        return self.get_credential(PUBLISHABLE_KEY_OPTION)

    def update_credentials(
        self,
        publishable_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Validate and save the provided credentials

        All provided values are validated before anything is written, so a
        bad value leaves the stored settings untouched.
        """
        provided = {
            PUBLISHABLE_KEY_OPTION: publishable_key,
            SECRET_KEY_OPTION: secret_key,
            WEBHOOK_SECRET_OPTION: webhook_secret,
        }
        cleaned = {
            option: validate_credential(option, value)
            for option, value in provided.items()
            if value is not None
        }
        if not cleaned:
            raise ValueError("No settings provided")

        for option, value in cleaned.items():
            self.store.set(option, value)
            logger.info(f"Updated Stripe setting {option}")
        return self.get_status()

    def get_status(self) -> Dict[str, Any]:
        """Configuration overview for the operator UI"""
        status = {}
        for option in CREDENTIALS:
            value = self.get_credential(option)
            status[option] = {
                "configured": bool(value),
                "preview": mask_secret(value, CREDENTIALS[option][0]),
            }
        status["setup_complete"] = all(status[option]["configured"] for option in CREDENTIALS)
        status["webhook_path"] = WEBHOOK_PATH
        return status

    def test_connection(self) -> Dict[str, str]:
        """Retrieve the Stripe account with the configured secret key

        Raises:
            ValueError: no key configured, or Stripe rejected the request
        """
        secret_key = self.get_secret_key()
        if not secret_key:
            raise ValueError("No secret key configured")

        try:
            account = stripe.Account.retrieve(api_key=secret_key)
        except stripe.StripeError as e:
            logger.warning(f"Stripe connection test failed: {e}")
            raise ValueError(getattr(e, "user_message", None) or str(e) or "Stripe connection failed")

        display_name = None
        try:
            display_name = account["settings"]["dashboard"]["display_name"]
        except (KeyError, TypeError):
            pass
        logger.info(f"Stripe connection test succeeded for account {account['id']}")
        return {"account": display_name or account["id"]}
