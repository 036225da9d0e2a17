#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from os import path
import sys

import grpc

# The protobuf modules are compiled on import, the '.proto' file is resolved against 'sys.path'
PROTO_ROOT = path.abspath(path.join(path.dirname(__file__), "..", ".."))
PROTO_FILE = "invest_instruments/proto/instruments.proto"

if PROTO_ROOT not in sys.path:
    sys.path.append(PROTO_ROOT)

instruments_pb2, instruments_pb2_grpc = grpc.protos_and_services(PROTO_FILE)

__all__ = ["instruments_pb2", "instruments_pb2_grpc"]
