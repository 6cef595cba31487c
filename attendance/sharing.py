"""Report delivery channels.

A channel turns report text into a link the browser can open (a WhatsApp
chat, a mail draft). ``deliver`` tries channels in configured order and
classifies the attempt as success, fallback or failed.
"""
import logging
from dataclasses import dataclass
from urllib.parse import quote, urlencode

from django.conf import settings

logger = logging.getLogger(__name__)

SUCCESS = 'success'
FALLBACK = 'fallback'
FAILED = 'failed'

SHARE_SUBJECT = 'Attendance Report'


@dataclass(frozen=True)
class ShareOutcome:
    status: str
    channel: str = ''
    url: str = ''
    reason: str = ''

    @property
    def delivered(self) -> bool:
        return self.status in (SUCCESS, FALLBACK)


def normalize_phone(value: str, country_code: str = '') -> str:
    """Digits-only international number as wa.me expects (no plus)."""
    digits = ''.join(ch for ch in str(value or '') if ch.isdigit())
    if not digits:
        return ''
    country_code = country_code or getattr(settings, 'DAILYTRACK_DEFAULT_COUNTRY_CODE', '91')
    # 0XXXXXXXXXX (trunk prefix) and bare 10-digit local numbers
    if digits.startswith('0') and len(digits) == 11:
        return country_code + digits[1:]
    if len(digits) == 10:
        return country_code + digits
    return digits


class ShareChannel:
    name = ''

    def is_available(self) -> bool:
        return True

    def send(self, text: str) -> str:
        raise NotImplementedError


class WhatsAppChannel(ShareChannel):
    name = 'whatsapp'

    def __init__(self, phone: str = '', enabled=None, **options):
        self.phone = normalize_phone(phone)
        self.enabled = getattr(settings, 'DAILYTRACK_WHATSAPP_ENABLED', True) if enabled is None else enabled

    def is_available(self) -> bool:
        return bool(self.enabled)

    def send(self, text: str) -> str:
        return f"https://wa.me/{self.phone}?text={quote(text)}"


class EmailChannel(ShareChannel):
    name = 'email'

    def __init__(self, recipient: str = '', **options):
        self.recipient = recipient

    def send(self, text: str) -> str:
        query = urlencode({'subject': SHARE_SUBJECT, 'body': text}, quote_via=quote)
        return f"mailto:{self.recipient}?{query}"


CHANNELS = {
    WhatsAppChannel.name: WhatsAppChannel,
    EmailChannel.name: EmailChannel,
}


def configured_channels(names=None, **options):
    """Instantiate channels from ``DAILYTRACK_SHARE_CHANNELS`` (or ``names``).

    ``options`` (e.g. ``phone``, ``recipient``) go to every channel; each one
    picks what it understands.
    """
    if names is None:
        names = getattr(settings, 'DAILYTRACK_SHARE_CHANNELS', ['whatsapp', 'email'])
    channels = []
    for name in names:
        cls = CHANNELS.get(name)
        if cls is None:
            logger.warning("Unknown share channel %r ignored", name)
            continue
        channels.append(cls(**options))
    return channels


def deliver(text: str, channels=None) -> ShareOutcome:
    """Hand ``text`` to the first available channel.

    The first configured channel counts as primary; any later one that takes
    the message is reported as a fallback.
    """
    channels = configured_channels() if channels is None else list(channels)
    if not channels:
        return ShareOutcome(status=FAILED, reason='No share channel configured')
    try:
        for position, channel in enumerate(channels):
            if not channel.is_available():
                continue
            url = channel.send(text)
            status = SUCCESS if position == 0 else FALLBACK
            logger.info("Attendance report shared via %s (%s)", channel.name, status)
            return ShareOutcome(status=status, channel=channel.name, url=url)
    except Exception as exc:
        logger.exception("Sharing attendance report failed")
        return ShareOutcome(status=FAILED, reason=str(exc) or 'Unknown error occurred')
    return ShareOutcome(status=FAILED, reason='No share channel available')
