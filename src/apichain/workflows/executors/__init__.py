"""Protocol executors."""

from __future__ import annotations

from apichain.workflows.executors.base import ProtocolExecutor
from apichain.workflows.executors.graphql import GraphQLExecutor
from apichain.workflows.executors.registry import ExecutorRegistry
from apichain.workflows.executors.rest import RestExecutor
from apichain.workflows.executors.rpc import GrpcExecutor

__all__ = [
    "ProtocolExecutor",
    "RestExecutor",
    "GraphQLExecutor",
    "GrpcExecutor",
    "ExecutorRegistry",
]
