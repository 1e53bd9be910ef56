from dataclasses import dataclass
from typing import Callable, Dict, List, Literal, Optional, Tuple, get_args
from datetime import datetime
import re


Platform = Literal["whatsapp", "telegram", "manual"]
SUPPORTED_PLATFORMS: Tuple[str, ...] = get_args(Platform)

MANUAL_SENDERS = ("You", "Them")


@dataclass(frozen=True)
class ParsedMessage:
    """One message recovered from a chat export."""
    timestamp: Optional[datetime]
    sender: str
    text: str


class ChatLogParser:
    """
    Turns the text of a chat export into an ordered list of ParsedMessage.

    Supported layouts:
      whatsapp: "[15/3/24, 9:05 PM] Alice: hello"
      telegram: "[15.03.2024 21:05:00] Alice: hello"
      manual:   free text, one message per non-blank line

    The parser keeps no per-call state, so a single instance can be shared
    between requests.
    """

    def __init__(self):
        # WhatsApp: "[DD/MM/YY, H:MM(:SS)( AM|PM)] Sender: text"
        # The time group is kept loose so that a bracket with an unreadable
        # time still yields a message (with no timestamp).
        self._whatsapp_msg_re = re.compile(
            r"\[(?P<date>\d{1,2}/\d{1,2}/\d{2,4}),?\s+(?P<time>[^\]\n]+)\]"
            r"[ \t]*(?P<sender>[^:\n]+):[ \t]*(?P<text>.+)",
            re.IGNORECASE,
        )
        self._whatsapp_time_re = re.compile(
            r"(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?(?:\s?(?P<period>[AP]M))?",
            re.IGNORECASE,
        )

        # Telegram: "[DD.MM.YYYY HH:MM:SS] Sender: text"
        self._telegram_msg_re = re.compile(
            r"\[(?P<datetime>\d{2}\.\d{2}\.\d{4}\s+\d{2}:\d{2}:\d{2})\]"
            r"[ \t]*(?P<sender>[^:\n]+):[ \t]*(?P<text>.+)",
        )

        # Detection only looks at the bracketed header
        self._whatsapp_detect_re = re.compile(r"\[\d{1,2}/\d{1,2}/\d{2,4},?\s+\d{1,2}:\d{2}")
        self._telegram_detect_re = re.compile(r"\[\d{2}\.\d{2}\.\d{4}\s+\d{2}:\d{2}:\d{2}\]")

        self._strategies: Dict[str, Callable[[str], List[ParsedMessage]]] = {
            "whatsapp": self._parse_whatsapp,
            "telegram": self._parse_telegram,
            "manual": self._parse_manual,
        }

    def parse(self, content: str, platform: Platform) -> List[ParsedMessage]:
        """
        Parse `content` with the strategy registered for `platform`.

        Lines that do not match the platform layout are skipped. Callers are
        expected to validate the platform tag beforehand; an unknown tag raises
        ValueError.
        """
        strategy = self._strategies.get(platform)
        if strategy is None:
            raise ValueError(f"Unsupported platform: {platform!r}")
        return strategy(content or "")

    def detect_platform(self, content: str) -> Platform:
        """
        Best-effort sniff of the export format.

        The first bracketed header found anywhere in the text decides; the rest
        of the content is not checked. Anything without a recognised header is
        treated as manual input.
        """
        if self._whatsapp_detect_re.search(content or ""):
            return "whatsapp"
        if self._telegram_detect_re.search(content or ""):
            return "telegram"
        return "manual"

    # --------------------
    # Platform parsers
    # --------------------
    def _parse_whatsapp(self, content: str) -> List[ParsedMessage]:
        messages: List[ParsedMessage] = []
        for m in self._whatsapp_msg_re.finditer(content):
            record = self._build_message(
                self._parse_whatsapp_datetime(m.group("date"), m.group("time")),
                m.group("sender"),
                m.group("text"),
            )
            if record is not None:
                messages.append(record)
        return messages

    def _parse_telegram(self, content: str) -> List[ParsedMessage]:
        messages: List[ParsedMessage] = []
        for m in self._telegram_msg_re.finditer(content):
            record = self._build_message(
                self._parse_telegram_datetime(m.group("datetime")),
                m.group("sender"),
                m.group("text"),
            )
            if record is not None:
                messages.append(record)
        return messages

    def _parse_manual(self, content: str) -> List[ParsedMessage]:
        """
        No structure to go on: one message per non-blank line, speakers
        alternating by position. All records share the parse time.
        """
        now = datetime.now()
        lines = [line.strip() for line in content.split("\n") if line.strip()]
        return [
            ParsedMessage(timestamp=now, sender=MANUAL_SENDERS[idx % 2], text=line)
            for idx, line in enumerate(lines)
        ]

    # --------------------
    # Helpers
    # --------------------
    @staticmethod
    def _build_message(timestamp: Optional[datetime], sender: str, text: str) -> Optional[ParsedMessage]:
        sender = sender.strip()
        text = text.strip()
        if not sender or not text:
            return None
        return ParsedMessage(timestamp=timestamp, sender=sender, text=text)

    @staticmethod
    def _normalize_year(y: int) -> int:
        return y + 2000 if y < 100 else y

    def _parse_whatsapp_datetime(self, date_str: str, time_str: str) -> Optional[datetime]:
        """Day-first date plus a 12h or 24h clock. Returns None when unusable."""
        try:
            day, month, year = (int(p) for p in date_str.split("/"))
        except ValueError:
            return None
        year = self._normalize_year(year)

        tm = self._whatsapp_time_re.search(time_str)
        if not tm:
            return None

        hour = int(tm.group("hour"))
        minute = int(tm.group("minute"))
        second = int(tm.group("second") or 0)
        period = tm.group("period")

        # convert 12-hour to 24-hour if AM/PM present
        if period:
            period = period.upper()
            if period == "PM" and hour != 12:
                hour += 12
            elif period == "AM" and hour == 12:
                hour = 0

        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None

    def _parse_telegram_datetime(self, value: str) -> Optional[datetime]:
        try:
            date_part, time_part = value.split()
            day, month, year = (int(p) for p in date_part.split("."))
            hour, minute, second = (int(p) for p in time_part.split(":"))
            return datetime(year, month, day, hour, minute, second)
        except (ValueError, TypeError):
            return None


_default_parser = ChatLogParser()


def parse_chat(content: str, platform: Platform) -> List[ParsedMessage]:
    return _default_parser.parse(content, platform)


def detect_platform(content: str) -> Platform:
    return _default_parser.detect_platform(content)
