"""
Response Serializers - Format negotiation support.

Maps a format identifier (the ``format`` query parameter) to the
serializer that renders response envelopes in that format.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import json
import logging
import threading

DEFAULT_FORMAT = "json"


class ResponseSerializer(ABC):
    """Renders a response envelope into bytes."""

    @abstractmethod
    def serialize(self, payload: Dict[str, Any]) -> bytes:
        """
        Serialize an envelope.

        Args:
            payload: The response envelope

        Returns:
            bytes: Encoded response body
        """
        pass

    @abstractmethod
    def content_type(self) -> str:
        """Returns the Content-Type header value for serialized bodies."""
        pass


class JSONSerializer(ResponseSerializer):
    """Compact JSON with sorted keys, so equal envelopes yield equal bytes."""

    def serialize(self, payload: Dict[str, Any]) -> bytes:
        return json.dumps(
            payload,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def content_type(self) -> str:
        return "application/json"


class SerializerRegistry:
    """
    Registry of response serializers keyed by format.

    Writers take the lock and publish a fresh dict, so readers on the
    request path never block.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._serializers: Dict[str, ResponseSerializer] = {DEFAULT_FORMAT: JSONSerializer()}
        self._logger = logging.getLogger(__name__)

    def register(self, format_name: str, serializer: ResponseSerializer) -> None:
        """Register a serializer, replacing any existing one for the format."""
        with self._lock:
            serializers = dict(self._serializers)
            replaced = format_name in serializers
            serializers[format_name] = serializer
            self._serializers = serializers

        if replaced:
            self._logger.info(f"Response serializer '{format_name}' replaced.")
        else:
            self._logger.info(f"Response serializer '{format_name}' registered.")

    def unregister(self, format_name: str) -> bool:
        """
        Remove the serializer for a format.

        Returns:
            bool: True if a serializer was removed, False if none was registered
        """
        with self._lock:
            if format_name not in self._serializers:
                self._logger.warning(f"Response serializer '{format_name}' not registered.")
                return False
            serializers = dict(self._serializers)
            del serializers[format_name]
            self._serializers = serializers

        self._logger.info(f"Response serializer '{format_name}' unregistered.")
        return True

    def get(self, format_name: str) -> Optional[ResponseSerializer]:
        return self._serializers.get(format_name)

    def available_formats(self) -> List[str]:
        """Registered format keys in lexicographic order."""
        return sorted(self._serializers)
