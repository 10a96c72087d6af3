"""MD5 helpers for document fingerprints.

The HTTP store's polling subscription compares fingerprints to decide
whether a freshly fetched document is a new push.  They are **not** used
for security purposes.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def md5_hash(data: str) -> str:
    """Return the hex-encoded MD5 digest of *data* (UTF-8 encoded).

    Examples
    --------
    >>> md5_hash("hello")
    '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def hash_dict(d: dict[str, Any]) -> str:
    """Return the hex-encoded MD5 of a JSON-serialized dict.

    Keys are sorted so that two documents with the same content but a
    different key order produce the same fingerprint.  Values JSON cannot
    represent (datetimes, for instance) are serialized with ``str``.

    Examples
    --------
    >>> hash_dict({"b": 2, "a": 1}) == hash_dict({"a": 1, "b": 2})
    True
    """
    return md5_hash(json.dumps(d, sort_keys=True, ensure_ascii=False, default=str))
