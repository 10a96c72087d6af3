from .hashing import hash_dict, md5_hash

__all__ = [
    "hash_dict",
    "md5_hash",
]
