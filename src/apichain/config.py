"""Configuration for protocol executors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_TIMEOUT = 30.0


@dataclass(repr=False)
class ExecutorConfig:
    """Transport settings shared by the bundled executors.

    ``proto_files`` lists ``.proto`` files describing the gRPC services that
    workflows may call; ``proto_include_dirs`` are extra import roots for them.
    """

    timeout: float
    verify_ssl: bool
    follow_redirects: bool
    headers: dict[str, str]
    proto_files: list[str]
    proto_include_dirs: list[str]

    __slots__ = ("timeout", "verify_ssl", "follow_redirects", "headers", "proto_files", "proto_include_dirs")

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        follow_redirects: bool = True,
        headers: dict[str, str] | None = None,
        proto_files: list[str] | None = None,
        proto_include_dirs: list[str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.follow_redirects = follow_redirects
        self.headers = headers or {}
        self.proto_files = proto_files or []
        self.proto_include_dirs = proto_include_dirs or []

    def __repr__(self) -> str:
        return (
            f"ExecutorConfig(timeout={self.timeout!r}, verify_ssl={self.verify_ssl!r}, "
            f"follow_redirects={self.follow_redirects!r}, headers={sorted(self.headers)!r}, "
            f"proto_files={self.proto_files!r})"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutorConfig:
        return cls(
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            verify_ssl=data.get("verify-ssl", True),
            follow_redirects=data.get("follow-redirects", True),
            headers=dict(data.get("headers", {})),
            proto_files=list(data.get("proto-files", [])),
            proto_include_dirs=list(data.get("proto-include-dirs", [])),
        )

    def update(
        self,
        *,
        timeout: float | None = None,
        verify_ssl: bool | None = None,
        follow_redirects: bool | None = None,
        headers: dict[str, str] | None = None,
        proto_files: list[str] | None = None,
    ) -> None:
        if timeout is not None:
            self.timeout = timeout
        if verify_ssl is not None:
            self.verify_ssl = verify_ssl
        if follow_redirects is not None:
            self.follow_redirects = follow_redirects
        if headers:
            self.headers = {**self.headers, **headers}
        if proto_files:
            self.proto_files = [*self.proto_files, *proto_files]
