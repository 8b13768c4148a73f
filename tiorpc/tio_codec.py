#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - RPC value codec
Copyright 2024 Twinleaf LLC
License: MIT

Converts RPC arguments and replies between text and their little endian
wire layout.
"""

import struct
import math
import re
from .tio_meta import TypeKind
from .tio_errors import EncodeError, DecodeUnderrun

# kind: (struct code, bytes)
TYPES = {
  TypeKind.U8:  ("B", 1),
  TypeKind.I8:  ("b", 1),
  TypeKind.U16: ("H", 2),
  TypeKind.I16: ("h", 2),
  TypeKind.U32: ("I", 4),
  TypeKind.I32: ("i", 4),
  TypeKind.U64: ("Q", 8),
  TypeKind.I64: ("q", 8),
  TypeKind.F32: ("f", 4),
  TypeKind.F64: ("d", 8),
}

INTEGER_LITERAL = re.compile(r"[+-]?[0-9]+")
FLOAT_LITERAL = re.compile(r"[+-]?(([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?|inf|infinity|nan)", re.IGNORECASE)

def type_width(kind):
  """Wire size in bytes, or 0 for strings."""
  if kind in TYPES:
    return TYPES[kind][1]
  return 0

def _struct(kind):
  return struct.Struct("<"+TYPES[kind][0])

def _integer_range(kind):
  bits = 8*TYPES[kind][1]
  if kind.value.startswith("u"):
    return 0, 2**bits - 1
  return -2**(bits-1), 2**(bits-1) - 1

def encode(text, kind):
  kind = TypeKind.parse(kind)
  if kind == TypeKind.UNKNOWN:
    raise EncodeError("Cannot encode a value of unknown type")
  if kind == TypeKind.STRING:
    try:
      return text.encode('utf-8')
    except UnicodeEncodeError as e:
      raise EncodeError(f"Argument is not valid UTF-8: {e.reason}") from None
  if kind.is_integer:
    if INTEGER_LITERAL.fullmatch(text) is None or (text.startswith("-") and kind.value.startswith("u")):
      raise EncodeError(f"'{text}' is not a valid {kind.value} literal")
    value = int(text)
    low, high = _integer_range(kind)
    if value < low or value > high:
      raise EncodeError(f"{value} out of range for {kind.value} ({low}..{high})")
    return _struct(kind).pack(value)
  if FLOAT_LITERAL.fullmatch(text) is None:
    raise EncodeError(f"'{text}' is not a valid {kind.value} literal")
  value = float(text)
  if math.isinf(value) and "inf" not in text.lower():
    raise EncodeError(f"{text} out of range for {kind.value}")
  try:
    packed = _struct(kind).pack(value)
  except OverflowError:
    raise EncodeError(f"{text} out of range for {kind.value}") from None
  if math.isinf(_struct(kind).unpack(packed)[0]) and not math.isinf(value):
    raise EncodeError(f"{text} out of range for {kind.value}")
  return packed

def decode_value(data, kind):
  """Native value of a reply: int, float, or the raw bytes for strings."""
  kind = TypeKind.parse(kind)
  if kind == TypeKind.STRING:
    return bytes(data)
  if kind == TypeKind.UNKNOWN:
    raise ValueError("Cannot decode a value of unknown type")
  width = TYPES[kind][1]
  if len(data) < width:
    raise DecodeUnderrun(f"{kind.value} needs {width} bytes, got {len(data)}")
  return _struct(kind).unpack(bytes(data[:width]))[0]

def format_float(value, kind=TypeKind.F64):
  """Shortest text that reads back as the same value at the given width."""
  if math.isnan(value) or math.isinf(value) or kind == TypeKind.F64:
    return repr(value)
  packer = _struct(kind)
  packed = packer.pack(value)
  for precision in range(1, 18):
    candidate = float(f"{value:.{precision}g}")
    try:
      if packer.pack(candidate) == packed:
        return repr(candidate)
    except OverflowError: # rounded past the largest finite value
      continue
  return repr(value)

def decode(data, kind):
  kind = TypeKind.parse(kind)
  if kind == TypeKind.STRING:
    return f"\"{bytes(data).decode('utf-8', errors='replace')}\" {list(bytes(data))}"
  value = decode_value(data, kind)
  if kind in (TypeKind.F32, TypeKind.F64):
    return format_float(value, kind)
  return str(value)
