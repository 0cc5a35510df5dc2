"""Content fingerprints for change detection (not for anything secret)."""

from __future__ import annotations

import hashlib
import json


def md5_hash(data: str) -> str:
    """Hex MD5 of the UTF-8 bytes of *data*.

    >>> md5_hash("hello")
    '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def hash_dict(d: dict | list) -> str:
    """Fingerprint a JSON value independently of its key order.

    List order still counts, since sibling order is page content.
    """
    canonical = json.dumps(d, sort_keys=True, ensure_ascii=False)
    return md5_hash(canonical)
