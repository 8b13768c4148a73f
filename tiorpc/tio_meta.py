#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - RPC metadata
Copyright 2024 Twinleaf LLC
License: MIT

Every RPC on a device reports a 16 bit metadata word through `rpc.info`:

  bits 0-3   type tag: 0 unsigned, 1 signed, 2 float, 3 string
  bits 4-7   size of the value in bytes
  bit  8     readable
  bit  9     writable
  bit  10    persistent (stored in EEPROM)

A metadata word of zero means the device knows nothing about the RPC.
"""

import enum
import collections

TL_META_TYPE_UNSIGNED = 0
TL_META_TYPE_SIGNED   = 1
TL_META_TYPE_FLOAT    = 2
TL_META_TYPE_STRING   = 3

TL_META_READABLE   = 0x0100
TL_META_WRITABLE   = 0x0200
TL_META_PERSISTENT = 0x0400

class TypeKind(enum.Enum):
  U8      = "u8"
  U16     = "u16"
  U32     = "u32"
  U64     = "u64"
  I8      = "i8"
  I16     = "i16"
  I32     = "i32"
  I64     = "i64"
  F32     = "f32"
  F64     = "f64"
  STRING  = "string"
  UNKNOWN = ""

  @classmethod
  def parse(cls, name):
    """Type from its wire name, ie 'u16'. Raises ValueError for anything else."""
    if isinstance(name, cls):
      return name
    if name == "":
      raise ValueError("Empty type name")
    try:
      return cls(name)
    except ValueError:
      raise ValueError(f"Invalid type '{name}' (one of u8/u16/u32/u64 i8/i16/i32/i64 f32/f64 string)") from None

  @property
  def is_integer(self):
    return self in INTEGER_KINDS

  @property
  def is_numeric(self):
    return self in INTEGER_KINDS or self in (TypeKind.F32, TypeKind.F64)

INTEGER_KINDS = (
  TypeKind.U8, TypeKind.U16, TypeKind.U32, TypeKind.U64,
  TypeKind.I8, TypeKind.I16, TypeKind.I32, TypeKind.I64,
)

# (type tag, size) -> kind
META_KINDS = {
  (TL_META_TYPE_UNSIGNED, 1): TypeKind.U8,
  (TL_META_TYPE_UNSIGNED, 2): TypeKind.U16,
  (TL_META_TYPE_UNSIGNED, 4): TypeKind.U32,
  (TL_META_TYPE_UNSIGNED, 8): TypeKind.U64,
  (TL_META_TYPE_SIGNED,   1): TypeKind.I8,
  (TL_META_TYPE_SIGNED,   2): TypeKind.I16,
  (TL_META_TYPE_SIGNED,   4): TypeKind.I32,
  (TL_META_TYPE_SIGNED,   8): TypeKind.I64,
  (TL_META_TYPE_FLOAT,    4): TypeKind.F32,
  (TL_META_TYPE_FLOAT,    8): TypeKind.F64,
}

class TypeDescriptor(collections.namedtuple('TypeDescriptor',
    ['kind', 'width', 'readable', 'writable', 'persistent', 'unknown'])):
  __slots__ = ()

  def flags(self):
    """Short access string, ie 'rw-'."""
    return ("r" if self.readable else "-") \
         + ("w" if self.writable else "-") \
         + ("p" if self.persistent else "-")

  def __str__(self):
    if self.unknown:
      return "?"
    return f"{self.kind.value or '?'} {self.flags()}"

def decode_meta(meta):
  meta = int(meta) & 0xFFFF
  tag = meta & 0xF
  width = (meta >> 4) & 0xF
  if tag == TL_META_TYPE_STRING:
    kind = TypeKind.STRING
  else:
    kind = META_KINDS.get((tag, width), TypeKind.UNKNOWN)
  return TypeDescriptor(
    kind       = kind,
    width      = width,
    readable   = bool(meta & TL_META_READABLE),
    writable   = bool(meta & TL_META_WRITABLE),
    persistent = bool(meta & TL_META_PERSISTENT),
    unknown    = meta == 0,
  )
