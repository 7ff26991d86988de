"""
Contact extraction for lead capture.

Pulls email addresses, phone numbers and self-introduced names out of the
visitor's side of a conversation using deterministic patterns. Later
mentions win over earlier ones, so a visitor correcting a typo is honoured.
"""
import logging
import re
from typing import Optional, Sequence

from models.conversation import Turn, VISITOR
from models.lead import ContactInfo

logger = logging.getLogger(__name__)


class ContactExtractor:
    """Extract contact fields from visitor turns."""

    EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

    # Optional country code, then at least 7 digits with common separators
    PHONE_PATTERN = re.compile(r"(?<![\w@])(\+?\(?\d[\d\s().-]{5,}\d)(?![\w@])")
    MIN_PHONE_DIGITS = 7
    MAX_PHONE_DIGITS = 15

    # A digit run counts as a phone only with a "+" prefix, a grouped
    # 3-3-4 layout or a cue word shortly before it
    GROUPED_PHONE_PATTERN = re.compile(r"(?:\(\d{3}\)\s?|\d{3}[\s.-])\d{3}[\s.-]\d{4}")
    DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
    PHONE_CUES = ("phone", "call", "number", "tel", "mobile", "cell", "whatsapp", "contact", "reach me")
    PHONE_CUE_PATTERN = re.compile(
        r"\b(" + "|".join(re.escape(cue) for cue in sorted(PHONE_CUES, key=len, reverse=True)) + r")\b"
    )
    PHONE_CUE_WINDOW = 30

    NAME_PATTERN = re.compile(
        r"\b(?i:my name is|my name's|i am|i'm|this is|call me)\s+([A-Z][a-zA-Z'-]+(?:\s+[A-Z][a-zA-Z'-]+)?)"
    )

    # Words that follow "I'm"/"I am" without being a name
    NOT_NAMES = {
        "Interested", "Looking", "Not", "Just", "Trying", "Happy", "Good",
        "Fine", "Here", "Also", "Still", "Working", "Curious", "Ready",
    }

    def extract(
        self,
        turns: Sequence[Turn],
        visitor_name: Optional[str] = None,
    ) -> ContactInfo:
        """
        Extract contact fields from the visitor's turns.

        Args:
            turns: Conversation history in order
            visitor_name: Name the visitor supplied when starting the chat

        Returns:
            ContactInfo with any fields found
        """
        contact = ContactInfo(name=(visitor_name or "").strip() or None)

        for turn in turns:
            if turn.role != VISITOR:
                continue
            text = turn.content

            email = self.find_email(text)
            if email:
                contact.email = email

            phone = self.find_phone(text)
            if phone:
                contact.phone = phone

            name = self.find_name(text)
            if name:
                contact.name = name

        return contact

    def find_email(self, text: str) -> Optional[str]:
        matches = self.EMAIL_PATTERN.findall(text or "")
        return matches[-1].lower() if matches else None

    def find_phone(self, text: str) -> Optional[str]:
        text = text or ""
        found = None
        for match in self.PHONE_PATTERN.finditer(text):
            candidate = match.group(1).strip()
            digits = re.sub(r"\D", "", candidate)
            if not self.MIN_PHONE_DIGITS <= len(digits) <= self.MAX_PHONE_DIGITS:
                continue
            if self.DATE_PATTERN.fullmatch(candidate):
                continue
            if not self._looks_like_phone(candidate, text[:match.start(1)]):
                continue
            found = ("+" if candidate.startswith("+") else "") + digits
        return found

    def _looks_like_phone(self, candidate: str, preceding: str) -> bool:
        if candidate.startswith("+") or self.GROUPED_PHONE_PATTERN.fullmatch(candidate):
            return True
        window = preceding[-self.PHONE_CUE_WINDOW:].lower()
        return bool(self.PHONE_CUE_PATTERN.search(window))

    def find_name(self, text: str) -> Optional[str]:
        found = None
        for match in self.NAME_PATTERN.finditer(text or ""):
            candidate = match.group(1)
            if candidate.split()[0] in self.NOT_NAMES:
                continue
            found = candidate
        return found
