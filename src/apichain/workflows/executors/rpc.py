"""gRPC executor.

Services are described by ``.proto`` files compiled at runtime with
``grpc_tools.protoc`` into a descriptor pool, so no generated stubs are
needed. Only unary-unary methods are callable from a workflow step. The
request ``body`` is the input message as JSON and the response body is the
output message as a dict.

Status codes are gRPC codes: 0 on success, the RPC's code on failure.
"""

from __future__ import annotations

import logging
import tempfile
from importlib import resources
from pathlib import Path
from typing import Any, Iterable

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.descriptor import MethodDescriptor
from grpc_tools import protoc

from apichain.config import ExecutorConfig
from apichain.workflows.credentials import ApiKeyLocation, CredentialBundle, inject_credentials
from apichain.workflows.errors import ProtoLoadError
from apichain.workflows.executors.base import ProtocolExecutor
from apichain.workflows.models import RequestTemplate, ResponseEnvelope

logger = logging.getLogger(__name__)

SECURE_SCHEMES = ("grpcs", "https")
PLAIN_SCHEMES = ("grpc", "http")


class GrpcExecutor(ProtocolExecutor):
    """Calls unary gRPC methods described by loaded ``.proto`` files."""

    protocol_name = "gRPC"

    def __init__(
        self,
        config: ExecutorConfig | None = None,
        pool: descriptor_pool.DescriptorPool | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            config: Transport settings; ``proto_files`` are loaded immediately.
            pool: Descriptor pool to resolve services from. Defaults to a fresh pool.

        Raises:
            ProtoLoadError: If the configured proto files do not compile.
        """
        super().__init__(config)
        self.pool = pool or descriptor_pool.DescriptorPool()
        self.services: list[str] = []
        if self.config.proto_files:
            self.load(self.config.proto_files, self.config.proto_include_dirs)

    def load(self, files: Iterable[str | Path], include_dirs: Iterable[str | Path] = ()) -> list[str]:
        """Compile ``files`` into the pool and return the services they define."""
        services = load_protos(self.pool, files, include_dirs)
        self.services.extend(services)
        logger.debug("Loaded gRPC services: %s", ", ".join(services))
        return services

    def validate_request(self, request: RequestTemplate) -> list[str]:
        errors = []
        if not request.service:
            errors.append("service is required for gRPC requests")
        if not request.rpc_method:
            errors.append("rpcMethod is required for gRPC requests")
        if not request.endpoint:
            errors.append("endpoint is required")
        elif channel_target(request.endpoint) is None:
            errors.append("endpoint must be host:port or grpc(s)://host:port")
        if request.body is not None and not isinstance(request.body, dict):
            errors.append("body must be a JSON object for gRPC requests")
        return errors

    def find_method(self, service: str, name: str) -> MethodDescriptor | None:
        try:
            method = self.pool.FindServiceByName(service).FindMethodByName(name)
        except KeyError:
            return None
        return method

    def build_metadata(self, request: RequestTemplate) -> list[tuple[str, str]]:
        """Headers and ``metadata`` as gRPC metadata; keys must be lowercase."""
        merged = {**self.config.headers, **request.headers, **(request.metadata or {})}
        return [(str(key).lower(), str(value)) for key, value in merged.items()]

    def channel(self, target: str, secure: bool) -> grpc.aio.Channel:
        if secure:
            return grpc.aio.secure_channel(target, grpc.ssl_channel_credentials())
        return grpc.aio.insecure_channel(target)

    async def execute(self, request: RequestTemplate, credentials: CredentialBundle | None = None) -> ResponseEnvelope:
        problems = self.validate_request(request)
        if problems:
            return self.invalid(problems)

        method = self.find_method(request.service, request.rpc_method)
        if method is None:
            return self.invalid([f"{request.service}/{request.rpc_method} not found in loaded proto files"])
        if method.client_streaming or method.server_streaming:
            return self.invalid([f"{method.full_name} is a streaming method; only unary methods are supported"])

        # gRPC has no query string; API keys always travel as metadata
        if credentials is not None and credentials.location == ApiKeyLocation.QUERY:
            credentials = credentials.model_copy(update={"location": ApiKeyLocation.HEADER})
        request = inject_credentials(request, credentials)

        input_class = message_factory.GetMessageClass(method.input_type)
        output_class = message_factory.GetMessageClass(method.output_type)
        try:
            message = json_format.ParseDict(request.body or {}, input_class())
        except json_format.ParseError as e:
            return self.invalid([f"body does not match {method.input_type.full_name}: {e}"])

        target, secure = channel_target(request.endpoint)
        try:
            async with self.channel(target, secure) as channel:
                stub = channel.unary_unary(
                    f"/{method.containing_service.full_name}/{method.name}",
                    request_serializer=input_class.SerializeToString,
                    response_deserializer=output_class.FromString,
                )
                call = stub(message, metadata=self.build_metadata(request), timeout=self.config.timeout)
                response = await call
                headers = metadata_to_dict(await call.initial_metadata())
                headers.update(metadata_to_dict(await call.trailing_metadata()))
        except grpc.RpcError as e:
            logger.debug("gRPC %s on %s failed: %s", method.full_name, target, e)
            return self.format_rpc_error(e)

        return ResponseEnvelope(
            status_code=grpc.StatusCode.OK.value[0],
            headers=headers,
            body=json_format.MessageToDict(response, preserving_proto_field_name=True),
            success=True,
        )

    def format_rpc_error(self, error: grpc.RpcError) -> ResponseEnvelope:
        code = error.code() if hasattr(error, "code") else grpc.StatusCode.UNKNOWN
        if code == grpc.StatusCode.DEADLINE_EXCEEDED:
            message = f"Request timed out after {self.config.timeout}s"
        else:
            details = error.details() if hasattr(error, "details") else str(error)
            message = f"gRPC {code.name}: {details}"
        trailing = error.trailing_metadata() if hasattr(error, "trailing_metadata") else None
        return ResponseEnvelope(
            status_code=code.value[0],
            headers=metadata_to_dict(trailing),
            error=message,
            success=False,
        )


def channel_target(endpoint: str) -> tuple[str, bool] | None:
    """Split an endpoint into a channel target and whether it needs TLS."""
    scheme, separator, rest = endpoint.strip().partition("://")
    if not separator:
        target, secure = scheme, False
    elif scheme.lower() in SECURE_SCHEMES:
        target, secure = rest, True
    elif scheme.lower() in PLAIN_SCHEMES:
        target, secure = rest, False
    else:
        return None
    target = target.rstrip("/")
    host, _, port = target.rpartition(":")
    if not host or not port.isdigit():
        return None
    return target, secure


def metadata_to_dict(metadata: Any) -> dict[str, str]:
    result: dict[str, str] = {}
    for key, value in metadata or ():
        result[key] = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
    return result


def load_protos(
    pool: descriptor_pool.DescriptorPool,
    files: Iterable[str | Path],
    include_dirs: Iterable[str | Path] = (),
) -> list[str]:
    """Compile ``.proto`` files with protoc and add them to ``pool``.

    Each file's directory is an import root, after ``include_dirs``. The
    well-known types shipped with grpcio-tools are always importable.

    Returns:
        Fully qualified names of the services the files define.

    Raises:
        ProtoLoadError: If protoc rejects the files or the pool already holds
            conflicting definitions.
    """
    paths = [str(Path(f).resolve()) for f in files]
    roots = dict.fromkeys(
        [
            *(str(Path(d).resolve()) for d in include_dirs),
            *(str(Path(p).parent) for p in paths),
            str(resources.files("grpc_tools") / "_proto"),
        ]
    )
    for path in paths:
        if not Path(path).is_file():
            raise ProtoLoadError(f"Proto file not found: {path}", paths)

    with tempfile.TemporaryDirectory() as tmp:
        output = Path(tmp) / "descriptors.pb"
        args = [
            "grpc_tools.protoc",
            f"--descriptor_set_out={output}",
            "--include_imports",
            *(f"--proto_path={root}" for root in roots),
            *paths,
        ]
        if protoc.main(args) != 0:
            raise ProtoLoadError("protoc failed to compile proto files", paths)
        descriptor_set = descriptor_pb2.FileDescriptorSet.FromString(output.read_bytes())

    services = []
    for file_proto in descriptor_set.file:
        try:
            pool.Add(file_proto)
        except (TypeError, ValueError) as e:
            raise ProtoLoadError(f"cannot add {file_proto.name} to descriptor pool: {e}", paths) from e
        prefix = f"{file_proto.package}." if file_proto.package else ""
        services.extend(f"{prefix}{service.name}" for service in file_proto.service)
    return services
