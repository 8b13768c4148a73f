import struct
import pytest
import tiorpc
from tiocapture import CaptureSession, CaptureState, parse_byte_list, samples_from_bytes, event_name
from conftest import byte_list_blocks

U32_R = 0x0140

def capture_device(transport, element, size, blocksize, blocks):
  transport.metadata[f'{element}.capture.size'] = U32_R
  transport.metadata[f'{element}.capture.blocksize'] = U32_R
  transport.replies[f'{element}.capture.size'] = struct.pack('<I', size)
  transport.replies[f'{element}.capture.blocksize'] = struct.pack('<I', blocksize)
  transport.replies[f'{element}.capture.block'] = byte_list_blocks(blocks)

def test_endpoint_names(client):
  session = CaptureSession('vector.x', client)
  assert session.trigger_name == 'vector.x.capture.trigger'
  assert session.size_endpoint == 'vector.x.capture.size'
  assert session.block_size_endpoint == 'vector.x.capture.blocksize'
  assert session.block_endpoint == 'vector.x.capture.block'
  assert session.state == CaptureState.IDLE

def test_full_capture(transport, client):
  blocks = [[0,0,128,63], [0,0,0,64], [0,0,64,64], [0,0]]
  capture_device(transport, 'vector', 100, 30, blocks)
  session = CaptureSession('vector', client)
  data = session.run()
  assert session.block_count == 3
  assert session.state == CaptureState.ASSEMBLED
  assert data == bytes([0,0,128,63, 0,0,0,64, 0,0,64,64, 0,0])
  assert session.samples == [1.0, 2.0, 3.0]
  block_calls = [payload for name, payload in transport.calls if name == 'vector.capture.block']
  assert block_calls == [struct.pack('<H', i) for i in range(4)]
  assert transport.names()[:3] == ['vector.capture.trigger', 'vector.capture.size', 'vector.capture.blocksize']

def test_exclusive_last_block(transport, client):
  capture_device(transport, 'vector', 100, 30, [[1], [2], [3], [4]])
  session = CaptureSession('vector', client, inclusive_last_block=False)
  assert session.run() == b'\x01\x02\x03'

def test_index_type(transport, client):
  capture_device(transport, 'vector', 4, 4, [[1], [2]])
  transport.replies['vector.capture.block'] = byte_list_blocks([[1], [2]], index_format='<B')
  session = CaptureSession('vector', client, index_type='u8')
  assert session.run() == b'\x01\x02'

def test_trigger_failure_is_not_fatal(transport, client):
  capture_device(transport, 'vector', 4, 4, [[9], []])
  transport.replies['vector.capture.trigger'] = tiorpc.TransportError("busy")
  session = CaptureSession('vector', client)
  assert session.run() == b'\x09'
  assert session.state == CaptureState.ASSEMBLED

def test_size_failure_gives_empty_capture(transport, client):
  capture_device(transport, 'vector', 100, 30, [[1]]*4)
  transport.replies['vector.capture.size'] = tiorpc.TransportError("timeout")
  session = CaptureSession('vector', client)
  assert session.run() == b''
  assert session.block_count == 0
  assert session.samples == []
  assert 'vector.capture.block' not in transport.names()

def test_blocksize_failure_gives_empty_capture(transport, client):
  capture_device(transport, 'vector', 100, 30, [[1]]*4)
  transport.replies['vector.capture.blocksize'] = tiorpc.TransportError("timeout")
  session = CaptureSession('vector', client)
  assert session.run() == b''
  assert session.block_count == 0

def test_zero_block_size(transport, client):
  capture_device(transport, 'vector', 100, 0, [[1]])
  session = CaptureSession('vector', client)
  assert session.run() == b''
  assert 'vector.capture.block' not in transport.names()

def test_unparseable_size(transport, client):
  capture_device(transport, 'vector', 100, 30, [[1]])
  transport.metadata['vector.capture.size'] = 0
  transport.replies['vector.capture.size'] = b'lots'
  session = CaptureSession('vector', client)
  assert session.run() == b''

def test_block_failure_discards_capture(transport, client):
  def flaky(payload):
    if struct.unpack('<H', payload)[0] == 2:
      raise tiorpc.TransportError("lost connection")
    return b'\x01\x02\x03\x04'
  capture_device(transport, 'vector', 100, 30, [])
  transport.replies['vector.capture.block'] = flaky
  session = CaptureSession('vector', client)
  assert session.run() == b''
  assert session.state == CaptureState.FAILED
  assert session.accumulated == bytearray()

def test_empty_block_reply(transport, client):
  capture_device(transport, 'vector', 4, 4, [[], [7]])
  session = CaptureSession('vector', client)
  assert session.run() == b'\x07'

def test_parse_byte_list():
  assert parse_byte_list("\"\" [0, 0, 128, 63]") == [0, 0, 128, 63]
  assert parse_byte_list("\"a[b\" [1,2]") == [1, 2]
  assert parse_byte_list("[1, x, 300, -1, 5]") == [1, 0, 0, 0, 5]
  assert parse_byte_list("\"\" []") == []
  assert parse_byte_list("no list") == []

def test_samples_from_bytes():
  assert samples_from_bytes(bytes([0,0,128,63, 0,0,0,64])) == [1.0, 2.0]
  assert samples_from_bytes(bytes([0,0,128,63, 0,0,0,64, 1,2])) == [1.0, 2.0]
  assert samples_from_bytes(b'\x01') == []

def test_event_name():
  assert event_name('vector.x') == 'vector'
  assert event_name('therm') == 'therm'

def test_largest_f32_block_size(transport, client):
  F32_R = 0x0142
  capture_device(transport, 'vector', 100, 30, [[5]])
  transport.metadata['vector.capture.blocksize'] = F32_R
  transport.replies['vector.capture.blocksize'] = b'\xff\xff\x7f\x7f'
  session = CaptureSession('vector', client)
  assert session.run() == b'\x05'
  assert session.block_size == 3.4028235e+38
  assert session.block_count == 0
