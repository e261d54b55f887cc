"""
PII masking helpers for log lines and error payloads.
"""
import re
from typing import Dict, Any, Optional


class PIIProtection:
    """Utilities for protecting personally identifiable information."""

    PII_FIELDS = {'email', 'phone', 'phone_number', 'name', 'customer_name'}

    @staticmethod
    def mask_email(email: Optional[str]) -> str:
        """
        Mask email address for safe display.
        Example: john.doe@example.com -> jo******@example.com
        """
        if not email or '@' not in email:
            return email or ''

        local, domain = email.split('@', 1)
        if len(local) <= 2:
            masked_local = local[0] + '*'
        else:
            masked_local = local[:2] + '*' * (len(local) - 2)
        return f"{masked_local}@{domain}"

    @staticmethod
    def mask_phone(phone: Optional[str]) -> str:
        """
        Mask phone number for safe display, keeping the last 4 digits.
        Example: +1-555-123-4567 -> +*-***-***-4567
        """
        if not phone:
            return phone or ''

        digits = re.sub(r'\D', '', phone)
        if len(digits) < 4:
            return '*' * len(phone)

        keep_from = len(digits) - 4
        seen = 0
        masked = []
        for char in phone:
            if char.isdigit():
                masked.append('*' if seen < keep_from else char)
                seen += 1
            else:
                masked.append(char)
        return ''.join(masked)

    @staticmethod
    def scrub_pii_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
        """Replace PII values in a dictionary (recursively) with '[REDACTED]'."""
        if not isinstance(data, dict):
            return data

        scrubbed = {}
        for key, value in data.items():
            if key.lower() in PIIProtection.PII_FIELDS:
                scrubbed[key] = '[REDACTED]'
            elif isinstance(value, dict):
                scrubbed[key] = PIIProtection.scrub_pii_from_dict(value)
            else:
                scrubbed[key] = value
        return scrubbed
