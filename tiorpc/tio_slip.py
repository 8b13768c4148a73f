#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - SLIP framing for serial ports
Copyright 2017-2024 Twinleaf LLC
License: MIT

Packets on serial links are CRC32 terminated and SLIP escaped.
"""
import binascii
import struct

SLIP_END = 0xC0
SLIP_END_CHAR = b"\xC0"
SLIP_ESC = 0xDB
SLIP_ESC_END = 0xDC
SLIP_ESC_ESC = 0xDD
SLIP_MAX_LEN = 2048

class SLIPEncodingError(IOError):
    pass

def decode(slipbuf):
  if len(slipbuf) < 4:
    raise SLIPEncodingError("Packet too short")
  msg = bytearray()
  rx_esc_next = False
  for byte in slipbuf:
    if rx_esc_next:
      rx_esc_next = False
      if byte == SLIP_ESC_END:
        msg.append(SLIP_END)
      elif byte == SLIP_ESC_ESC:
        msg.append(SLIP_ESC)
      else:
        raise SLIPEncodingError("Corrupt SLIP stream: SLIP_ESC not followed by valid escape code")
    elif byte == SLIP_ESC:
      rx_esc_next = True
    elif byte != SLIP_END:
      msg.append(byte)
  if len(msg) < 4:
    raise SLIPEncodingError("Packet too short")
  msg_checksum = struct.unpack("<I", msg[-4:])[0]
  msg = msg[:-4]
  if msg_checksum != binascii.crc32(msg):
    raise SLIPEncodingError("CRC32 invalid")
  return bytes(msg)

def encode(msg):
  msg = bytes(msg) + struct.pack("<I", binascii.crc32(msg))
  slipbuf = bytearray(SLIP_END_CHAR)
  for c in msg:
    if c == SLIP_END:
      slipbuf += bytes([SLIP_ESC, SLIP_ESC_END])
    elif c == SLIP_ESC:
      slipbuf += bytes([SLIP_ESC, SLIP_ESC_ESC])
    else:
      slipbuf.append(c)
  slipbuf.append(SLIP_END)
  return bytes(slipbuf)

class SLIPFramer(object):
  """Accumulates serial bytes and hands back complete frames."""

  def __init__(self):
    self.buffer = bytearray()

  def __len__(self):
    return len(self.buffer)

  def feed(self, data):
    self.buffer.extend(data)
    frames = []
    while SLIP_END_CHAR in self.buffer:
      frame, self.buffer = self.buffer.split(SLIP_END_CHAR, 1)
      if frame:
        frames += [bytes(frame)]
    if len(self.buffer) > SLIP_MAX_LEN:
      raise SLIPEncodingError(f"No frame end in {len(self.buffer)} bytes")
    return frames
