#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - RPC error types
Copyright 2024 Twinleaf LLC
License: MIT
"""

class RPCError(Exception):
  pass

class EncodeError(RPCError, ValueError):
  """Argument text is not a valid literal for the requested type."""
  pass

class DecodeUnderrun(RPCError, ValueError):
  """Reply is shorter than the width of the reply type."""
  pass

class TransportError(RPCError, IOError):
  pass

class TLRPCException(TransportError):
  """The device answered with an RPC error packet."""
  def __init__(self, message, code=None):
    super().__init__(message)
    self.code = code

class RPCFailed(RPCError):
  def __init__(self, name, cause):
    super().__init__(f"RPC failed: {name}: {cause}")
    self.name = name
    self.cause = cause
