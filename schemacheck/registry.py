"""Offline store of schema documents addressed by URI."""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterator, List
from urllib.parse import urldefrag

from schemacheck.document import load_json_file

logger = logging.getLogger(__name__)


def normalize_uri(uri: str) -> str:
    """Strips the fragment (and an empty trailing ``#``) from a URI."""
    return urldefrag(uri)[0]


class ReferenceRegistry(Mapping):
    """
    Maps absolute URIs to raw JSON schema documents.

    The registry is filled by the caller before a schema is loaded and is
    only read by the loader. It never fetches anything over the network.
    """

    def __init__(self, documents: Dict[str, Any] = None) -> None:
        self._documents: Dict[str, Any] = {}
        for uri, document in (documents or {}).items():
            self.register(uri, document)

    def register(self, uri: str, document: Any) -> 'ReferenceRegistry':
        """Registers a raw schema document under a URI. Returns the registry for chaining."""
        key = normalize_uri(uri)
        if not key:
            raise ValueError(f"cannot register a schema under the relative reference '{uri}'")
        if not isinstance(document, (dict, bool)):
            raise ValueError(f"schema registered as '{uri}' must be an object or boolean")
        logger.debug("Registered schema %s", key)
        self._documents[key] = document
        return self

    def register_file(self, uri: str, file_path: str) -> 'ReferenceRegistry':
        """Reads a JSON schema file and registers it under a URI."""
        return self.register(uri, load_json_file(file_path))

    def resolve(self, uri: str) -> Any:
        """Returns the document registered for a URI, or None."""
        return self._documents.get(normalize_uri(uri))

    def uris(self) -> List[str]:
        return list(self._documents)

    def __getitem__(self, uri: str) -> Any:
        return self._documents[normalize_uri(uri)]

    def __contains__(self, uri: object) -> bool:
        return isinstance(uri, str) and normalize_uri(uri) in self._documents

    def __iter__(self) -> Iterator[str]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)
