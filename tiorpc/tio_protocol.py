#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - A serialization for instrumentation
Copyright 2018-2024 Twinleaf LLC
License: MIT

Packet layer for named RPCs. Every packet is a 4 byte header
(type, routing size, payload size), the payload, then the routing bytes.
"""

import struct
import random
import logging

TL_PTYPE_NONE       = 0
TL_PTYPE_INVALID    = 0
TL_PTYPE_LOG        = 1 # Log messages
TL_PTYPE_RPC_REQ    = 2 # RPC request
TL_PTYPE_RPC_REP    = 3 # RPC reply
TL_PTYPE_RPC_ERROR  = 4 # RPC error
TL_PTYPE_HEARTBEAT  = 5 # NOP heartbeat
TL_PTYPE_STREAM0    = 128
TL_PTYPE_OTHER_ROUTING = -1

TL_RPC_ERRORS = [ \
  'TL_RPC_ERROR_NONE'      , #  0 No error condition
  'TL_RPC_ERROR_UNDEFINED' , #  1 No error code for this error, check message
  'TL_RPC_ERROR_NOTFOUND'  , #  2 Call to a nonexistent (or disabled) RPC
  'TL_RPC_ERROR_MALFORMED' , #  3 Malformed req packet
  'TL_RPC_ERROR_ARGS_SIZE' , #  4 Arguments have the wrong size
  'TL_RPC_ERROR_INVALID'   , #  5 Arguments values invalid
  'TL_RPC_ERROR_READ_ONLY' , #  6 Attempted to assign a value to RO variable
  'TL_RPC_ERROR_WRITE_ONLY', #  7 Attempted to read WO variable
  'TL_RPC_ERROR_TIMEOUT'   , #  8 Internal timeout condition
  'TL_RPC_ERROR_BUSY'      , #  9 Busy to perform this operation. try again
  'TL_RPC_ERROR_STATE'     , # 10 Wrong state to perform this operation.
  'TL_RPC_ERROR_LOAD'      , # 11 Error loading conf.
  'TL_RPC_ERROR_LOAD_RPC'  , # 12 Error auto RPCs after load.
  'TL_RPC_ERROR_SAVE'      , # 13 Error preparing conf to save.
  'TL_RPC_ERROR_SAVE_WR'   , # 14 Error saving conf to eeprom
  'TL_RPC_ERROR_INTERNAL'  , # 15 Firmware internal error.
  'TL_RPC_ERROR_NOBUFS'    , # 16 No buffers available to complete operation
  'TL_RPC_ERROR_RANGE'     , # 17 Value outside allowed range
  'TL_RPC_ERROR_USER'      , # 18 Start value to define per-RPC error codes
]

TL_PACKET_MAX_SIZE = 512
TL_PACKET_MAX_ROUTING_SIZE = 8

def rpc_error_name(code):
  if 0 <= code < len(TL_RPC_ERRORS):
    return TL_RPC_ERRORS[code]
  return f"TL_RPC_ERROR_USER+{code-len(TL_RPC_ERRORS)+1}"

class TIOProtocol(object):
  def __init__(self, routing=[]):

    self.routingBytes = bytearray(routing)
    routingKey = '/'.join(map(str,routing))
    self.logger = logging.getLogger('tio-protocol'+routingKey)

  def header(self, payloadType, payload):
    return struct.pack("<BBH", payloadType, len(self.routingBytes), len(payload) )

  def decode_packet(self, packet):
    if len(packet)<4:
      return { 'type':TL_PTYPE_NONE }

    # Parse header
    header = packet[0:4]
    headerFields = struct.unpack("<BBH", bytes(header) )
    payloadType, routingSize, payloadSize = headerFields
    if payloadSize > TL_PACKET_MAX_SIZE or routingSize>TL_PACKET_MAX_ROUTING_SIZE:
      return { 'type':TL_PTYPE_INVALID }
    if len(packet) < 4 + payloadSize + routingSize:
      return { 'type':TL_PTYPE_INVALID }

    parsedPacket = { 'type':payloadType }
    parsedPacket['raw'] = packet

    # Strip routing
    if routingSize > 0:
      routingBytes = packet[4+payloadSize:4+payloadSize+routingSize]
      parsedPacket['routing'] = list(routingBytes)
    else:
      parsedPacket['routing'] = []

    # Toss packet if it's wrong routing
    if list(self.routingBytes) != parsedPacket['routing']:
      parsedPacket['type'] = TL_PTYPE_OTHER_ROUTING
      return parsedPacket

    payload = bytes(packet[4:4+payloadSize])

    if payloadType == TL_PTYPE_LOG: # Log message
      logMessage = payload.decode('utf-8', errors='replace')
      parsedPacket['message'] = logMessage
      self.logger.info("LOG: " + logMessage)

    elif payloadType == TL_PTYPE_RPC_REP: # Got reply
      requestID = struct.unpack("<H", payload[:2] )[0]
      replyPayload = payload[2:]
      parsedPacket['requestid'] = requestID
      parsedPacket['payload'] = replyPayload
      self.logger.debug(f"REP (ID 0x{requestID:04x}): {replyPayload}")

    elif payloadType == TL_PTYPE_RPC_ERROR: # Got reply error
      requestID, errorCode = struct.unpack("<HH", payload[:4] )
      errorPayload = payload[4:]
      parsedPacket['requestid'] = requestID
      parsedPacket['error'] = errorCode
      parsedPacket['payload'] = errorPayload
      self.logger.debug(f"REP (ID 0x{requestID:04x}) Error {rpc_error_name(errorCode)}")

    elif payloadType == TL_PTYPE_HEARTBEAT:
      return parsedPacket

    elif payloadType >= TL_PTYPE_STREAM0:
      # Data streams are not consumed by RPC sessions
      pass

    else:
      self.logger.error(f"Unknown packet type {payloadType}")

    return parsedPacket

  def req(self, topic, payload):
    if type(topic) is str:
      topic = topic.encode('utf-8')
    requestID = random.randint(0,0xFFFF)
    methodID = len(topic) + 0x8000 # Set high bit and use length for named method
    msg = struct.pack("<HH", requestID, methodID ) + topic
    if payload is not None:
      msg += payload
    msg = self.header(TL_PTYPE_RPC_REQ, msg) + msg + self.routingBytes
    self.logger.debug(f"REQ (ID 0x{requestID:04x}): {topic.decode('utf-8')}({payload})")
    return msg, requestID

  def rep(self, requestID, payload=b''):
    """Reply packet, as a device would send it."""
    msg = struct.pack("<H", requestID) + bytes(payload)
    return self.header(TL_PTYPE_RPC_REP, msg) + msg + self.routingBytes

  def rep_error(self, requestID, errorCode, payload=b''):
    msg = struct.pack("<HH", requestID, errorCode) + bytes(payload)
    return self.header(TL_PTYPE_RPC_ERROR, msg) + msg + self.routingBytes

  def log(self, message):
    msg = message.encode('utf-8')
    return self.header(TL_PTYPE_LOG, msg) + msg + self.routingBytes

  def heartbeat(self):
    msg = b''
    return self.header(TL_PTYPE_HEARTBEAT, msg) + msg + self.routingBytes

def decode_req(packet):
  """Split a request packet into (requestID, topic, payload, routing)."""
  payloadType, routingSize, payloadSize = struct.unpack("<BBH", bytes(packet[0:4]))
  if payloadType != TL_PTYPE_RPC_REQ:
    raise ValueError(f"Not a request packet (type {payloadType})")
  payload = bytes(packet[4:4+payloadSize])
  routing = list(packet[4+payloadSize:4+payloadSize+routingSize])
  requestID, methodID = struct.unpack("<HH", payload[:4])
  topicLength = methodID & 0x7FFF
  topic = payload[4:4+topicLength].decode('utf-8')
  return requestID, topic, payload[4+topicLength:], routing
