"""Greeter client"""

from typing import Optional

import grpc

from .observability import get_logger
from .protocol import GreeterStub, HelloRequest

logger = get_logger(__name__)

DEFAULT_TARGET = "localhost:50051"


class GreeterClient:
    """Plaintext client for the Greeter service"""

    def __init__(self, target: str = DEFAULT_TARGET):
        self.target = target
        self._channel = grpc.insecure_channel(target)
        self._stub = GreeterStub(self._channel)

    def say_hello(self, name: str, timeout: Optional[float] = None) -> str:
        """Call ``SayHello`` and return the greeting"""
        logger.debug(f"Will try to greet {name!r} at {self.target}")
        response = self._stub.SayHello(HelloRequest(name=name), timeout=timeout)
        return response.message

    def close(self) -> None:
        self._channel.close()

    def __enter__(self) -> "GreeterClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
