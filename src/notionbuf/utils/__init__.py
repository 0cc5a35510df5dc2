from .hashing import hash_dict, md5_hash
from .redact import redact

__all__ = [
    "hash_dict",
    "md5_hash",
    "redact",
]
