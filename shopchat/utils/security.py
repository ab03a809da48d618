"""Security helpers: PII masking for log lines."""
import re

_LONG_DIGITS = re.compile(r"\b\d{10,}\b")
_EMAIL = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")


def mask_pii(text: str, max_len: int = 120) -> str:
    if not text:
        return ""
    masked = _LONG_DIGITS.sub("[REDACTED]", text)
    masked = _EMAIL.sub("[EMAIL]", masked)
    if len(masked) > max_len:
        masked = masked[:max_len] + "..."
    return masked
