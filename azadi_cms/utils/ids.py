"""Record identifier generation."""

import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_record_id(prefix: str) -> str:
    """Return ``<prefix>_<base36 millis><5 random chars>``, e.g. ``don_lq3k9x2abcde``."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"{prefix}_{_to_base36(millis)}{suffix}"
