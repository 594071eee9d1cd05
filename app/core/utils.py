import os
import random
import string
from typing import Optional
from urllib.parse import urlencode


REFERENCE_PREFIX = "CV"
REFERENCE_LENGTH = 8


def generate_reference_number(length: int = REFERENCE_LENGTH) -> str:
    """
    Generate a shareable application reference

    Args:
        length: Number of random characters after the prefix

    Returns:
        Reference such as CV-7QK2M9XA
    """
    suffix = ''.join(random.choices(
        string.ascii_uppercase + string.digits,
        k=length
    ))
    return f"{REFERENCE_PREFIX}-{suffix}"


def file_extension(filename: str) -> Optional[str]:
    """
    Lower-cased extension of a file name, without the dot

    Args:
        filename: Original uploaded file name

    Returns:
        Extension (e.g. "pdf"), or None if the name has none
    """
    ext = os.path.splitext(os.path.basename(filename or ""))[1]
    return ext[1:].lower() if ext else None


def build_public_url(base_url: str, path: str, **query) -> str:
    """
    Build a link into the public front-end

    Args:
        base_url: Front-end origin, e.g. https://visa.example.cv
        path: Path starting with /
        **query: Query string parameters

    Returns:
        Absolute URL
    """
    url = base_url.rstrip("/") + path
    if query:
        url += "?" + urlencode(query)
    return url


def mask_email(email: str) -> str:
    """
    Mask an email for logs (e.g., jo***@mail.cv)
    """
    if not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"
