#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Union
from datetime import datetime, timezone

from google.protobuf.timestamp_pb2 import Timestamp

from invest_instruments.proto import instruments_pb2 as grpc_buffer

# Full bond and share listings are several megabytes
MAX_GRPC_MESSAGE_LENGTH = 50000000

NANO = 1_000_000_000


def quotation_to_float(
    value: Union[grpc_buffer.Quotation, grpc_buffer.MoneyValue]
) -> float:
    """Quotations and money values are fixed point, 'units' + 'nano' / 10^9"""
    return value.units + value.nano / NANO


def to_timestamp(value: datetime) -> Timestamp:
    # Naive datetimes are taken as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    _timestamp = Timestamp()
    _timestamp.FromDatetime(value)
    return _timestamp


def from_timestamp(value: Timestamp) -> datetime:
    return value.ToDatetime(tzinfo=timezone.utc)
