import secrets
import string
import time

_ALPHABET = string.ascii_uppercase + string.digits


def _make_code(prefix: str, suffix_len: int = 5) -> str:
    # <prefix><ms timestamp><random suffix>, e.g. BC1718000000000K3Q9Z
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(suffix_len))
    return f"{prefix}{int(time.time() * 1000)}{suffix}"


def make_barcode() -> str:
    return _make_code("BC")


def make_qr_code() -> str:
    return _make_code("QR")
