#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - Typed RPC calls
Copyright 2024 Twinleaf LLC
License: MIT

Calls a named RPC with a text argument and renders the reply as text.
Argument and reply types come from the caller or, failing that, from the
device's own rpc.info metadata.
"""

import queue
import logging
from .tio_meta import TypeKind, decode_meta
from .tio_errors import TransportError, RPCFailed
from . import tio_codec

NO_VALUE = "default" # Reply had no payload

class RPCClient(object):
  def __init__(self, transport, debug=False):
    self.transport = transport
    self.debug = debug
    self.logger = logging.getLogger('tio-rpc')

  def query_type(self, name):
    try:
      meta = self.transport.query_metadata(name)
    except TransportError as e:
      self.logger.warning(f"No metadata for {name}: {e}")
      meta = 0
    return decode_meta(meta)

  def resolve_type(self, name):
    """Type of an RPC from its metadata; unknown types are treated as strings."""
    kind = self.query_type(name).kind
    if kind == TypeKind.UNKNOWN:
      self.logger.debug(f"{name}: unknown type, using string")
      return TypeKind.STRING
    return kind

  def invoke(self, name, arg=None, req_type=None, rep_type=None):
    if req_type is not None:
      req_type = TypeKind.parse(req_type)
    elif arg is not None:
      req_type = self.resolve_type(name)
    if rep_type is not None:
      rep_type = TypeKind.parse(rep_type)

    if arg is None:
      payload = b''
    else:
      payload = tio_codec.encode(arg, req_type)

    try:
      reply = self.transport.call(name, payload)
    except TransportError as e:
      self.logger.debug(f"RPC failed: {name}: {e!r}")
      raise RPCFailed(name, e) from e
    finally:
      if self.debug:
        for kind, message in self.drain_status():
          self.logger.debug(f"{kind}: {message}")

    if not reply:
      return NO_VALUE

    if rep_type is None:
      rep_type = req_type if req_type is not None else self.resolve_type(name)
    return tio_codec.decode(reply, rep_type)

  def drain_status(self):
    """Yields the transport's pending status events without blocking."""
    status_queue = getattr(self.transport, 'status_queue', None)
    if status_queue is None:
      return
    while True:
      try:
        yield status_queue.get(block=False)
      except queue.Empty:
        return
