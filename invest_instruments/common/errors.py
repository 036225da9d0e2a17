#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Dict, Optional, Sequence, Tuple

import grpc


class ConfigError(Exception):
    """Raised when the client configuration can't be loaded or is incomplete"""


class InvestError(Exception):
    """Failed call to the Invest API, keeps the status and the response header for diagnostics"""

    def __init__(
        self,
        message: str,
        code: Optional[grpc.StatusCode] = None,
        header: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.header: Dict[str, str] = header if header is not None else {}

    @property
    def tracking_id(self) -> Optional[str]:
        return self.header.get("x-tracking-id")

    @property
    def message(self) -> Optional[str]:
        return self.header.get("message")

    @classmethod
    def from_rpc_error(cls, method: str, exc: grpc.aio.AioRpcError) -> "InvestError":
        header = merge_metadata(exc.initial_metadata(), exc.trailing_metadata())
        return cls(
            f"{method}: {exc.code().name}: {exc.details()}",
            code=exc.code(),
            header=header,
        )

    def __str__(self) -> str:
        _message = super().__str__()
        if self.tracking_id:
            return f"{_message} (tracking id: '{self.tracking_id}')"

        return _message


def merge_metadata(
    *metadata: Optional[Sequence[Tuple[str, str]]]
) -> Dict[str, str]:
    """Flattens gRPC metadata into a dictionary, later values override earlier ones"""
    _header: Dict[str, str] = {}
    for _metadata in metadata:
        if not _metadata:
            continue

        for key, value in _metadata:
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            _header[key.lower()] = value

    return _header
