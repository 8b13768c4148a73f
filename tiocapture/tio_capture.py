#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - Block capture
Copyright 2020-2024 Twinleaf LLC
License: MIT

A capture is read back from an element in four steps:

  <element>.capture.trigger     start the acquisition
  <element>.capture.size        total bytes captured
  <element>.capture.blocksize   bytes per block
  <element>.capture.block       one block by index, as a list of bytes

The blocks are concatenated in index order and read as little endian f32.
"""

from typing import List
import enum
import math
import re
import struct
import logging
import tiorpc

class CaptureState(enum.Enum):
  IDLE = "idle"
  TRIGGERED = "triggered"
  SIZING_KNOWN = "sizing-known"
  FETCHING = "fetching"
  ASSEMBLED = "assembled"
  FAILED = "failed"

BYTE_LIST = re.compile(r"\[([^\[\]]*)\]\s*$")

def parse_byte_list(reply:str) -> List[int]:
  """Bytes from the trailing '[1, 2, 3]' of a string reply. Bad tokens read as 0."""
  match = BYTE_LIST.search(reply)
  if match is None:
    return []
  values = []
  for token in match.group(1).split(','):
    token = token.strip()
    if token == '':
      continue
    try:
      value = int(token)
    except ValueError:
      value = 0
    if value < 0 or value > 255:
      value = 0
    values += [value]
  return values

def samples_from_bytes(data) -> List[float]:
  count = len(data)//4
  return list(struct.unpack(f"<{count}f", bytes(data[:4*count])))

def event_name(element):
  return element.split('.')[0]

class CaptureSession(object):
  def __init__(self, element, client, index_type=tiorpc.TypeKind.U16, inclusive_last_block=True):
    self.element = element
    self.client = client
    self.index_type = tiorpc.TypeKind.parse(index_type)
    self.inclusive_last_block = inclusive_last_block
    self.logger = logging.getLogger('tio-capture')

    self.trigger_name = f"{element}.capture.trigger"
    self.size_endpoint = f"{element}.capture.size"
    self.block_size_endpoint = f"{element}.capture.blocksize"
    self.block_endpoint = f"{element}.capture.block"

    self.total_size = None
    self.block_size = None
    self.block_count = 0
    self.accumulated = bytearray()
    self.state = CaptureState.IDLE

  def trigger(self):
    try:
      self.client.invoke(self.trigger_name)
    except tiorpc.RPCError as e:
      self.logger.warning(f"Trigger failed, continuing: {e}")
    self.state = CaptureState.TRIGGERED

  def size(self):
    """Reads size and block size; False when the capture can't be sized."""
    try:
      self.total_size = float(self.client.invoke(self.size_endpoint))
      self.block_size = float(self.client.invoke(self.block_size_endpoint))
    except (tiorpc.RPCError, ValueError) as e:
      self.logger.error(f"Cannot size capture on {self.element}: {e}")
      self.block_count = 0
      return False
    if not math.isfinite(self.total_size) or not math.isfinite(self.block_size) or self.block_size <= 0:
      self.logger.error(f"Bad capture size {self.total_size}/{self.block_size} on {self.element}")
      self.block_count = 0
      return False
    self.block_count = int(math.floor(self.total_size / self.block_size))
    self.state = CaptureState.SIZING_KNOWN
    self.logger.debug(f"{self.element}: {self.total_size} bytes in {self.block_count} blocks of {self.block_size}")
    return True

  def block_indices(self):
    if self.inclusive_last_block:
      return range(self.block_count + 1)
    return range(self.block_count)

  def fetch(self, index):
    reply = self.client.invoke(self.block_endpoint, str(index),
      req_type=self.index_type, rep_type=tiorpc.TypeKind.STRING)
    if reply == tiorpc.NO_VALUE:
      return []
    return parse_byte_list(reply)

  def run(self) -> bytes:
    """Runs the whole sequence and returns the captured bytes."""
    self.accumulated = bytearray()
    self.trigger()
    if not self.size():
      self.state = CaptureState.ASSEMBLED
      return b''
    self.state = CaptureState.FETCHING
    try:
      for index in self.block_indices():
        self.accumulated += bytes(self.fetch(index))
    except tiorpc.RPCError as e:
      self.logger.error(f"Capture on {self.element} failed at block {index}: {e}")
      self.accumulated = bytearray()
      self.state = CaptureState.FAILED
      return b''
    self.state = CaptureState.ASSEMBLED
    self.logger.info(f"Captured {len(self.accumulated)} bytes from {self.element}")
    return bytes(self.accumulated)

  @property
  def samples(self) -> List[float]:
    return samples_from_bytes(self.accumulated)
