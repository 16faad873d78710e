import hashlib

DIGEST_HEX_LENGTH = 64


class ContentHasher:
    """SHA-256 fingerprint of raw upload bytes.

    Use ``hash_bytes`` for content already in memory, or ``update`` /
    ``hexdigest`` while streaming. Both produce the same digest.
    """

    def __init__(self) -> None:
        self._digest = hashlib.sha256()

    def update(self, chunk: bytes) -> None:
        self._digest.update(chunk)

    def hexdigest(self) -> str:
        return self._digest.hexdigest()

    @staticmethod
    def hash_bytes(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()
