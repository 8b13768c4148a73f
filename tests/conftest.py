import queue
import struct
import pytest
import tiorpc

class FakeTransport(object):
  """
  Scripted transport. replies maps an RPC name to bytes, an exception to
  raise, or a callable taking the payload.
  """

  def __init__(self, replies=None, metadata=None):
    self.replies = dict(replies or {})
    self.metadata = dict(metadata or {})
    self.calls = []
    self.metadata_queries = []
    self.status_queue = queue.Queue()

  def call(self, name, payload):
    self.calls += [(name, bytes(payload))]
    self.status_queue.put(('call', name))
    reply = self.replies.get(name, b'')
    if isinstance(reply, Exception):
      raise reply
    if callable(reply):
      return reply(payload)
    return reply

  def query_metadata(self, name):
    self.metadata_queries += [name]
    meta = self.metadata.get(name, 0)
    if isinstance(meta, Exception):
      raise meta
    return meta

  def names(self):
    return [name for name, payload in self.calls]

def text_reply(text):
  return text.encode('utf-8')

def byte_list_blocks(blocks, index_format="<H"):
  """Block replies for capture.block, indexed by the unpacked argument."""
  def reply(payload):
    index = struct.unpack(index_format, payload)[0]
    return bytes(blocks[index])
  return reply

@pytest.fixture
def transport():
  return FakeTransport()

@pytest.fixture
def client(transport):
  return tiorpc.RPCClient(transport)
