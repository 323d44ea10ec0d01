"""Protocol to executor registration table."""

from __future__ import annotations

from apichain.config import ExecutorConfig
from apichain.workflows.errors import UnsupportedProtocolError
from apichain.workflows.executors.base import ProtocolExecutor
from apichain.workflows.executors.graphql import GraphQLExecutor
from apichain.workflows.executors.rest import RestExecutor
from apichain.workflows.executors.rpc import GrpcExecutor
from apichain.workflows.models import Protocol


class ExecutorRegistry:
    """Maps protocol tags to executor instances."""

    def __init__(self) -> None:
        self._executors: dict[Protocol, ProtocolExecutor] = {}

    @classmethod
    def default(cls, config: ExecutorConfig | None = None) -> ExecutorRegistry:
        """Registry with the bundled REST, GraphQL and gRPC executors.

        Raises:
            ProtoLoadError: If ``config.proto_files`` do not compile.
        """
        config = config or ExecutorConfig()
        registry = cls()
        registry.register(Protocol.REST, RestExecutor(config))
        registry.register(Protocol.GRAPHQL, GraphQLExecutor(config))
        registry.register(Protocol.GRPC, GrpcExecutor(config))
        return registry

    def register(self, protocol: Protocol | str, executor: ProtocolExecutor) -> None:
        self._executors[_coerce(protocol)] = executor

    def unregister(self, protocol: Protocol | str) -> None:
        self._executors.pop(_coerce(protocol), None)

    def get(self, protocol: Protocol | str) -> ProtocolExecutor:
        """Return the executor for ``protocol``.

        Raises:
            UnsupportedProtocolError: If the tag is unknown or nothing is registered for it.
        """
        key = _coerce(protocol)
        try:
            return self._executors[key]
        except KeyError:
            raise UnsupportedProtocolError(key.value, f"No executor registered for protocol: {key.value}") from None

    def __contains__(self, protocol: object) -> bool:
        try:
            return _coerce(protocol) in self._executors  # type: ignore[arg-type]
        except UnsupportedProtocolError:
            return False

    @property
    def protocols(self) -> list[Protocol]:
        return list(self._executors)


def _coerce(protocol: Protocol | str) -> Protocol:
    if isinstance(protocol, Protocol):
        return protocol
    try:
        return Protocol(str(protocol).lower())
    except ValueError:
        raise UnsupportedProtocolError(str(protocol)) from None
