"""Point a Twilio number's voice and status webhooks at this service.

Usage:
    python scripts/setup_twilio.py --base-url https://<your-host> [--number-sid PN...]
"""

import argparse
import sys
from typing import Optional

from config.settings import settings
from scambait.telephony.twilio_handler import get_twilio_client
from scambait.utils.errors import ExternalServiceError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

INCOMING_PATH = "/api/twilio/incoming"
STATUS_PATH = "/api/twilio/status"


def find_number_sid(phone_number: str) -> Optional[str]:
    numbers = get_twilio_client().incoming_phone_numbers.list(phone_number=phone_number, limit=1)
    return numbers[0].sid if numbers else None


def configure_number(number_sid: str, base_url: str) -> None:
    """Update the voice URL and status callback on an IncomingPhoneNumber."""
    base_url = base_url.rstrip("/")
    get_twilio_client().incoming_phone_numbers(number_sid).update(
        voice_url=f"{base_url}{INCOMING_PATH}",
        voice_method="POST",
        status_callback=f"{base_url}{STATUS_PATH}",
        status_callback_method="POST",
    )
    logger.info("Number %s now posts calls to %s%s", number_sid, base_url, INCOMING_PATH)


def main() -> None:
    parser = argparse.ArgumentParser(description="Configure Twilio webhooks for the dashboard.")
    parser.add_argument("--base-url", required=False, help="Public https base URL; defaults to PUBLIC_BASE_URL")
    parser.add_argument("--number-sid", required=False, help="IncomingPhoneNumber SID; looked up from TWILIO_PHONE_NUMBER if omitted")
    args = parser.parse_args()

    base_url = args.base_url or settings.public_base_url
    if not base_url:
        logger.error("Provide --base-url or set PUBLIC_BASE_URL.")
        sys.exit(1)

    try:
        number_sid = args.number_sid
        if not number_sid:
            if not settings.twilio_phone_number:
                logger.error("Provide --number-sid or set TWILIO_PHONE_NUMBER.")
                sys.exit(1)
            number_sid = find_number_sid(settings.twilio_phone_number)
            if not number_sid:
                logger.error("No Twilio number matches %s.", settings.twilio_phone_number)
                sys.exit(1)
        configure_number(number_sid, base_url)
    except ExternalServiceError as exc:
        logger.error("%s", exc.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
