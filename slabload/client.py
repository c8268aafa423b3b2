"""
Seam between the load generator and the storage backend.

The generator only needs one operation from a backend client: submit a stream
of bytes with a redundancy setting and get back the slabs it produced. Real
backends plug in through a ``module:callable`` factory; the ``null://`` scheme
maps to :class:`DiscardClient`, which hashes and drops everything it receives.
"""

from __future__ import annotations

import hashlib
import importlib
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Protocol
from urllib.parse import urlsplit

LOGGER = logging.getLogger("slabload.client")

READ_CHUNK_SIZE = 1 << 20


class UploadError(Exception):
    """Raised by clients when a submission fails in a retryable way."""


class ClientSetupError(Exception):
    """Raised when a client cannot be constructed, connected or authorised."""


@dataclass(frozen=True)
class Redundancy:
    data_shards: int
    parity_shards: int

    @property
    def total_shards(self) -> int:
        return self.data_shards + self.parity_shards


@dataclass(frozen=True)
class Slab:
    id: str
    length: int


@dataclass
class UploadResult:
    object_id: str
    slabs: list[Slab] = field(default_factory=list)

    @property
    def slab_count(self) -> int:
        return len(self.slabs)


class UploadClient(Protocol):
    def submit(self, stream: BinaryIO, redundancy: Redundancy) -> UploadResult:
        ...

    def close(self) -> None:
        ...


ClientFactory = Callable[[str, bytes], UploadClient]


class DiscardClient:
    """Client that reads every byte, fingerprints it and keeps nothing."""

    def __init__(self, indexer_url: str = "null://", app_key: bytes = b"") -> None:
        self._indexer_url = indexer_url
        self._closed = False

    def submit(self, stream: BinaryIO, redundancy: Redundancy) -> UploadResult:
        if self._closed:
            raise UploadError("client is closed")
        digest = hashlib.sha256()
        length = 0
        while True:
            chunk = stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
            length += len(chunk)
        slab_id = digest.hexdigest()
        return UploadResult(object_id=slab_id, slabs=[Slab(id=slab_id, length=length)])

    def close(self) -> None:
        self._closed = True


SCHEME_FACTORIES: dict[str, ClientFactory] = {
    "null": DiscardClient,
}


def load_factory(factory_path: str) -> ClientFactory:
    module_name, sep, attr = factory_path.partition(":")
    if not sep or not module_name or not attr:
        raise ClientSetupError(
            f"invalid client factory {factory_path!r}; expected 'package.module:callable'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ClientSetupError(f"failed to import client module {module_name!r}") from exc
    try:
        factory = getattr(module, attr)
    except AttributeError as exc:
        raise ClientSetupError(f"module {module_name!r} has no attribute {attr!r}") from exc
    if not callable(factory):
        raise ClientSetupError(f"client factory {factory_path!r} is not callable")
    return factory


def create_client(
    indexer_url: str,
    app_key: bytes,
    factory_path: str | None = None,
) -> UploadClient:
    if factory_path:
        factory = load_factory(factory_path)
    else:
        scheme = urlsplit(indexer_url).scheme
        factory = SCHEME_FACTORIES.get(scheme)
        if factory is None:
            raise ClientSetupError(
                f"no built-in client for {indexer_url!r}; pass a client factory"
            )

    try:
        client = factory(indexer_url, app_key)
    except ClientSetupError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise ClientSetupError(f"failed to connect to {indexer_url}") from exc

    LOGGER.info("connected storage client for %s", indexer_url)
    return client


__all__ = [
    "ClientSetupError",
    "DiscardClient",
    "Redundancy",
    "Slab",
    "UploadClient",
    "UploadError",
    "UploadResult",
    "create_client",
    "load_factory",
]
