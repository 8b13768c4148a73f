import pytest
import tiorpc
from tiorpc import TypeKind, RPCClient, NO_VALUE

F32_RW = 0x0342
U16_R = 0x0120

def test_call_without_argument_sends_empty_payload(transport, client):
  transport.replies['dev.desc'] = b'VMR'
  assert client.invoke('dev.desc') == "\"VMR\" [86, 77, 82]"
  assert transport.calls == [('dev.desc', b'')]
  # Reply type came from metadata, which is unknown here
  assert transport.metadata_queries == ['dev.desc']

def test_argument_typed_from_metadata(transport, client):
  transport.metadata['data.rate'] = F32_RW
  transport.replies['data.rate'] = tiorpc.encode("10", "f32")
  assert client.invoke('data.rate', "10") == "10.0"
  assert transport.calls == [('data.rate', b'\x00\x00\x20\x41')]
  # Reply reuses the request type
  assert transport.metadata_queries == ['data.rate']

def test_unknown_metadata_falls_back_to_string(transport, client):
  transport.replies['dev.name'] = b'x'
  client.invoke('dev.name', "hello")
  assert transport.calls == [('dev.name', b'hello')]

def test_failed_metadata_query_falls_back_to_string(transport, client):
  transport.metadata['dev.name'] = tiorpc.TransportError("timeout")
  client.invoke('dev.name', "hello")
  assert transport.calls == [('dev.name', b'hello')]

def test_explicit_types_skip_metadata(transport, client):
  transport.replies['capture.block'] = b'\x01\x02'
  reply = client.invoke('capture.block', "3", req_type="u16", rep_type=TypeKind.STRING)
  assert reply == "\"\x01\x02\" [1, 2]"
  assert transport.calls == [('capture.block', b'\x03\x00')]
  assert transport.metadata_queries == []

def test_explicit_reply_type_without_argument(transport, client):
  transport.replies['rpc.list'] = b'\x2a\x00'
  assert client.invoke('rpc.list', rep_type="u16") == "42"
  assert transport.metadata_queries == []

def test_reply_type_from_metadata(transport, client):
  transport.metadata['rpc.list'] = U16_R
  transport.replies['rpc.list'] = b'\x2a\x00'
  assert client.invoke('rpc.list') == "42"

def test_empty_reply_is_no_value(transport, client):
  transport.replies['dev.conf.save'] = b''
  assert client.invoke('dev.conf.save') == NO_VALUE
  assert transport.metadata_queries == []

def test_encode_error_aborts_before_call(transport, client):
  with pytest.raises(tiorpc.EncodeError):
    client.invoke('dev.lock', "999", req_type="u8")
  assert transport.calls == []

def test_transport_failure_is_rpc_failed(transport, client):
  cause = tiorpc.TLRPCException("TL_RPC_ERROR_NOTFOUND", code=2)
  transport.replies['nope'] = cause
  with pytest.raises(tiorpc.RPCFailed) as info:
    client.invoke('nope')
  assert info.value.cause is cause
  assert info.value.name == 'nope'
  assert len(transport.calls) == 1

def test_short_reply_is_decode_underrun(transport, client):
  transport.replies['dev.systime'] = b'\x01\x02'
  with pytest.raises(tiorpc.DecodeUnderrun):
    client.invoke('dev.systime', rep_type="u64")

def test_drain_status_does_not_block(transport, client):
  transport.replies['a'] = b''
  client.invoke('a')
  client.invoke('a')
  assert list(client.drain_status()) == [('call', 'a'), ('call', 'a')]
  assert list(client.drain_status()) == []

def test_debug_drains_after_each_call(transport):
  client = RPCClient(transport, debug=True)
  client.invoke('a')
  assert transport.status_queue.empty()

def test_drain_without_status_queue():
  class Bare(object):
    def call(self, name, payload):
      return b''
  assert list(RPCClient(Bare()).drain_status()) == []

def test_query_type(transport, client):
  transport.metadata['x'] = F32_RW
  descriptor = client.query_type('x')
  assert descriptor.kind == TypeKind.F32
  assert descriptor.writable
