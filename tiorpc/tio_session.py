#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - A serialization for instrumentation
Copyright 2017-2024 Twinleaf LLC
License: MIT

RPC session with a single device over TCP, UDP, a serial port, or an
in-process router.
"""

import serial
import socket
import threading
import struct
import urllib.parse
import time
import queue
import hexdump
import logging
from . import tio_slip as slip
from .tio_protocol import *
from .tio_errors import TransportError, TLRPCException

TIO_DEFAULT_PORT = 7855

def parse_routing(routingStrings):
  """Routing bytes from path parts like ['0', '1']; the first child node is the outermost byte."""
  routingStrings = [address for address in routingStrings if address != '']
  try:
    routing = [ int(address) for address in routingStrings ]
  except ValueError:
    raise ValueError(f"Bad routing path: {'/'.join(routingStrings)}") from None
  return routing[::-1]

class TIOSession(object):
  def __init__(self, url="tcp://localhost", verbose=False, timeout=3.0, send_router=None):

    if verbose:
      logLevel = logging.DEBUG
    else:
      logLevel = logging.ERROR
    logging.basicConfig(level=logLevel)
    self.logger = logging.getLogger('tio-session')
    self.timeout = timeout

    # Connect to either TCP socket or serial port
    self.url = url
    self.uri = urllib.parse.urlparse(url)
    if self.uri.scheme in ["tcp", "udp"]:
      if self.uri.port is None:
        self.port = TIO_DEFAULT_PORT
      else:
        self.port = self.uri.port
      self.routing = parse_routing(self.uri.path.split('/')[1:])
      try:
        if self.uri.scheme == "tcp":
          self.socket = socket.create_connection((self.uri.hostname, self.port), timeout=timeout)
        else:
          self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
      except OSError as e:
        raise TransportError(f"Cannot connect to {url}: {e}") from e
      self.socket.settimeout(0.5)
    elif self.uri.scheme == "router":
      if send_router is None:
        raise ValueError("router:// sessions need a send_router")
      self.routing = parse_routing(self.uri.path.split('/')[1:])
      self.send_router = send_router
      self.recv_queue = queue.Queue(maxsize=1000)
    else:
      # Try treating as serial
      # Deal with non-standard url for routing
      # linux: /dev/tty0/0/1
      # mac: /dev/cu.usbmodem1421/0/1
      # windows: COM1/0/1
      spliturl = url.split('/')
      if spliturl[0].upper().startswith('COM'): # Windows
        port = spliturl[0]
        self.routing = parse_routing(spliturl[1:])
      elif len(spliturl) >= 3 and spliturl[1].lower()=='dev': # *nix
        port = '/'.join(spliturl[:3])
        self.routing = parse_routing(spliturl[3:])
      else:
        raise ValueError(f"Unknown url format: {url}")
      self.framer = slip.SLIPFramer()
      self.frames = []
      try:
        self.serial = serial.serial_for_url(port, baudrate=115200, timeout=1)
      except serial.SerialException as e:
        raise TransportError(f"Cannot open {port}: {e}") from e
      self.serial.reset_input_buffer()

    self.protocol = TIOProtocol(routing = self.routing)

    # Initialize queues and threading controls
    self.req_queue = queue.Queue(maxsize=1)
    self.rep_queue = queue.Queue(maxsize=1)
    self.status_queue = queue.Queue(maxsize=1000)
    self.lock = threading.Lock()
    self.alive = True

    # Launch socket management threads
    self.socket_recv_thread = threading.Thread(target=self.recv_thread)
    self.socket_recv_thread.daemon = True
    self.socket_recv_thread.name = 'recv-thread'
    self.socket_recv_thread.start()
    self.socket_send_thread = threading.Thread(target=self.send_thread)
    self.socket_send_thread.daemon = True
    self.socket_send_thread.name = 'send-thread'
    self.socket_send_thread.start()

  def __enter__(self):
    return self

  def __exit__(self, *exc):
    self.close()

  def close(self):
    if not self.alive:
      return
    self.alive = False
    self.status('closed', self.url)
    if self.uri.scheme in ["tcp", "udp"]:
      self.socket.close()
    elif self.uri.scheme != "router":
      self.serial.close()

  def status(self, kind, message):
    """Queue an event for whoever drains status_queue."""
    try:
      self.status_queue.put((kind, message), block=False)
    except queue.Full:
      try:
        self.status_queue.get(block=False) # Toss the oldest
        self.status_queue.put((kind, message), block=False)
      except (queue.Empty, queue.Full):
        pass

  def recv_thread(self):
    while self.alive:
      try:
        decoded_packet = self.recv() # Blocks
      except IOError as e:
        if self.alive:
          self.logger.error(f"Error: {e}")
          self.status('error', str(e))
          self.alive = False
        return
      if decoded_packet['type'] == TL_PTYPE_RPC_REP or decoded_packet['type'] == TL_PTYPE_RPC_ERROR:
        try:
          self.rep_queue.put(decoded_packet, block=False)
        except queue.Full:
          self.rep_queue.get() # Toss a packet
          self.rep_queue.put(decoded_packet, block=False)
          self.logger.error("Tossing an unclaimed REP!")
      elif decoded_packet['type'] == TL_PTYPE_LOG:
        self.status('log', decoded_packet['message'])
      elif decoded_packet['type'] == TL_PTYPE_OTHER_ROUTING:
        self.logger.debug(f"Ignoring packet for route {decoded_packet['routing']}")

  def send_thread(self):
    while self.alive:
      try:
        self.send(self.req_queue.get(timeout=0.5))
      except queue.Empty:
        pass
      except IOError as e:
        self.logger.error(f"Send error: {e}")
        self.status('error', str(e))
        continue
      try:
        self.send(self.protocol.heartbeat())
      except IOError:
        pass

  def recv_exactly(self, size):
    data = b''
    while len(data) < size:
      try:
        chunk = self.socket.recv(size-len(data))
      except socket.timeout:
        if not self.alive:
          raise IOError("Session closed")
        continue
      if chunk == b'':
        raise IOError("Lost connection")
      data += chunk
    return data

  def recv_tcp_packet(self):
    try:
      header = bytes(self.socket.recv(4))
    except socket.timeout:
      return b''
    if len(header) == 0:
      raise IOError("Lost connection")
    header += self.recv_exactly(4-len(header))
    payloadType, routingSize, payloadSize = struct.unpack("<BBH", header )
    if payloadSize > TL_PACKET_MAX_SIZE or routingSize>TL_PACKET_MAX_ROUTING_SIZE:
      return b''
    return header + self.recv_exactly(payloadSize+routingSize)

  def recv_udp_packet(self):
    try:
      packet, address = self.socket.recvfrom(TL_PACKET_MAX_SIZE+TL_PACKET_MAX_ROUTING_SIZE+4)
    except socket.timeout:
      return b''
    return packet

  def recv_slip_packet(self):
    while self.alive and self.serial.is_open:
      if self.frames:
        frame = self.frames.pop(0)
        try:
          return slip.decode(frame)
        except slip.SLIPEncodingError as error:
          self.logger.debug(error)
          return b''
      try:
        # read all that is there or wait for one byte (blocking)
        data = self.serial.read(self.serial.in_waiting or 1)
      except serial.SerialException as e:
        raise IOError(f"serial error: {e}")
      if data:
        try:
          self.frames += self.framer.feed(data)
        except slip.SLIPEncodingError as error:
          self.logger.error(f"{error}; dropping buffered bytes")
          self.framer = slip.SLIPFramer()
    return b''

  def recv_router_packet(self):
    try:
      return self.recv_queue.get(timeout=0.5)
    except queue.Empty:
      return b''

  def send(self, packet):
    if self.uri.scheme == "tcp":
      self.socket.sendall(packet)
    elif self.uri.scheme == "udp":
      self.socket.sendto(packet,(self.uri.hostname, self.port))
    elif self.uri.scheme == "router":
      self.send_router(packet)
    else:
      self.serial.write(slip.encode(packet))

  def recv(self):
    if self.uri.scheme == "tcp":
      packet = self.recv_tcp_packet()
    elif self.uri.scheme == "udp":
      packet = self.recv_udp_packet()
    elif self.uri.scheme == "router":
      packet = self.recv_router_packet()
    else:
      packet = self.recv_slip_packet()
    try:
      return self.protocol.decode_packet(packet)
    except (struct.error, UnicodeDecodeError) as error:
      self.logger.debug('Error decoding packet:\n' + hexdump.hexdump(bytes(packet), result='return'))
      self.logger.exception(error)
      return { 'type':TL_PTYPE_INVALID }

  def rep_flush(self):
    while not self.rep_queue.empty():
      try:
        self.rep_queue.get(block=False)
      except queue.Empty:
        break

  def send_req(self, topic = "dev.desc", payload = None):
    msg, requestID = self.protocol.req(topic, payload)
    self.req_queue.put(msg)
    return requestID

  def recv_rep(self, requestID):
    deadline = time.monotonic() + self.timeout
    while True:
      remaining = deadline - time.monotonic()
      if remaining <= 0:
        raise queue.Empty
      parsedPacket = self.rep_queue.get(timeout=remaining)
      if parsedPacket['requestid'] != requestID:
        self.logger.debug(f"Stale REP (ID 0x{parsedPacket['requestid']:04x})")
        continue
      if parsedPacket['type'] == TL_PTYPE_RPC_ERROR:
        raise TLRPCException(rpc_error_name(parsedPacket['error']), code=parsedPacket['error'])
      return parsedPacket['payload']

  def call(self, topic, payload = b''):
    """Blocking named RPC. Returns the reply payload, b'' when there is none."""
    if not self.alive:
      raise TransportError(f"Session to {self.url} is closed")
    with self.lock:
      self.rep_flush()
      requestID = self.send_req(topic, payload or None)
      try:
        return self.recv_rep(requestID)
      except TLRPCException as e:
        self.logger.error(f"RPC ERROR {topic}: {e}" )
        self.status('rpc-error', f"{topic}: {e}")
        raise
      except queue.Empty:
        self.logger.error(f"RPC TIMEOUT {topic}" )
        self.status('timeout', topic)
        raise TransportError(f"Timeout waiting for reply to {topic}") from None

  def query_metadata(self, topic):
    """Metadata word of an RPC as reported by rpc.info, 0 when unknown."""
    reply = self.call("rpc.info", topic.encode('utf-8'))
    if len(reply) < 2:
      return 0
    return struct.unpack("<H", reply[:2])[0]
