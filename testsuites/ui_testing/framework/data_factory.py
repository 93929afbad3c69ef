"""
================================================================================
Portal Data Factory
================================================================================

Random but reproducible form data for the portal request screens.

Features:
- Seeded generation (same seed, same data) for reproducing a failed run
- Person names, emails and 10-digit phones for the masked phone inputs
- Payloads for client contact, patient referral and portal requests
- Notes, sentences and reset passwords

================================================================================
"""

import random
import string
from datetime import date
from typing import Any, Dict, List, Optional


# ================================================================================
# Word Lists
# ================================================================================

FIRST_NAMES = [
    "Olivia", "Liam", "Emma", "Noah", "Ava", "Elijah", "Sophia", "Lucas",
    "Mia", "Mason", "Harper", "Ethan", "Amelia", "Logan", "Evelyn", "James",
    "Abigail", "Benjamin", "Ella", "Henry", "Grace", "Samuel", "Chloe", "Owen",
]

LAST_NAMES = [
    "Anderson", "Bennett", "Carter", "Dawson", "Ellis", "Foster", "Garcia",
    "Hughes", "Iverson", "Jenkins", "Keller", "Lawson", "Morgan", "Nolan",
    "Ortega", "Parker", "Quinn", "Reyes", "Sullivan", "Turner", "Vaughn",
    "Walsh", "Young", "Zimmerman",
]

WORDS = [
    "patient", "request", "follow", "up", "schedule", "review", "therapy",
    "session", "insurance", "update", "contact", "provider", "referral",
    "weekly", "plan", "confirmed", "notes", "callback", "morning", "clinic",
    "approved", "pending", "information", "details", "records", "visit",
]

EMAIL_DOMAIN = "test.example.com"


class PortalDataFactory:
    """
    Factory for portal form data.

    Example:
        factory = PortalDataFactory(seed=42)
        contact = factory.client_contact()
        await client_contacts.create_new_request(**contact)
    """

    PREFIX = "autotest"

    def __init__(self, seed: Optional[int] = None):
        """
        Args:
            seed: Random seed for reproducible data generation
        """
        self.seed = seed
        self._random = random.Random(seed)

    # ----------------------------------------------------------------------------
    # Primitives
    # ----------------------------------------------------------------------------

    def _random_string(self, length: int = 8, chars: str = string.ascii_lowercase + string.digits) -> str:
        return "".join(self._random.choice(chars) for _ in range(length))

    def first_name(self) -> str:
        return self._random.choice(FIRST_NAMES)

    def last_name(self) -> str:
        return self._random.choice(LAST_NAMES)

    def email(self, first_name: Optional[str] = None, last_name: Optional[str] = None) -> str:
        first = (first_name or self.first_name()).lower()
        last = (last_name or self.last_name()).lower()
        return f"{self.PREFIX}.{first}.{last}.{self._random_string(5)}@{EMAIL_DOMAIN}"

    def phone(self) -> str:
        """
        Ten digits for the ``(###) ###-####`` masked inputs.

        Area code and exchange never start with 0 or 1.
        """
        area = f"{self._random.randint(2, 9)}{self._random.randint(0, 9)}{self._random.randint(0, 9)}"
        exchange = f"{self._random.randint(2, 9)}{self._random.randint(0, 9)}{self._random.randint(0, 9)}"
        line = f"{self._random.randint(0, 9999):04d}"
        return f"{area}{exchange}{line}"

    @staticmethod
    def format_phone(digits: str) -> str:
        """``"5551234567"`` -> ``"(555) 123-4567"``."""
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:10]}"

    def sentence(self, words: int = 8) -> str:
        chosen: List[str] = [self._random.choice(WORDS) for _ in range(words)]
        text = " ".join(chosen)
        return text[0].upper() + text[1:] + "."

    def note(self, prefix: str = "Automation note") -> str:
        return f"{prefix}: {self.sentence()}"

    def new_password(self) -> str:
        """Twelve random letters and digits followed by ``@123``."""
        return self._random_string(12, string.ascii_letters + string.digits) + "@123"

    # ----------------------------------------------------------------------------
    # Payloads
    # ----------------------------------------------------------------------------

    def client_contact(self, **overrides: Any) -> Dict[str, Any]:
        first, last = self.first_name(), self.last_name()
        data = {
            "first_name": first,
            "last_name": last,
            "email": self.email(first, last),
            "phone": self.phone(),
            "note": self.note("Client contact request"),
        }
        data.update(overrides)
        return data

    def patient_referral(self, **overrides: Any) -> Dict[str, Any]:
        first, last = self.first_name(), self.last_name()
        provider_first, provider_last = self.first_name(), self.last_name()
        data = {
            "first_name": first,
            "last_name": last,
            "email": self.email(first, last),
            "phone": self.phone(),
            "provider_first_name": provider_first,
            "provider_last_name": provider_last,
            "provider_email": self.email(provider_first, provider_last),
            "provider_phone": self.phone(),
            "note": self.note("Referral"),
        }
        data.update(overrides)
        return data

    def portal_request(self, **overrides: Any) -> Dict[str, Any]:
        first, last = self.first_name(), self.last_name()
        data = {
            "first_name": first,
            "last_name": last,
            "email": self.email(first, last),
            "phone": self.phone(),
        }
        data.update(overrides)
        return data

    def probation_request(self, **overrides: Any) -> Dict[str, Any]:
        first, last = self.first_name(), self.last_name()
        data = {
            "first_name": first,
            "last_name": last,
            "email": self.email(first, last),
            "phone": self.phone(),
            "designation": "Probation Officer",
            "additional_info": self.sentence(),
        }
        data.update(overrides)
        return data

    def followup_description(self, max_length: int = 50) -> str:
        """
        Short referral description. The portal refuses descriptions that
        mention "Admission".
        """
        description = self.sentence()[:max_length]
        while "admission" in description.lower():
            description = self.sentence()[:max_length]
        return description

    def event_title(self) -> str:
        return f"Autotest event {self._random_string(6)}"

    def approval_note(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"Approved on {today.strftime('%m/%d/%Y')}. {self.sentence()}"

    def rejection_note(self) -> str:
        return f"Rejected: {self.sentence()}"


__all__ = [
    "PortalDataFactory",
]
