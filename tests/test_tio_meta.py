import pytest
from tiorpc import TypeKind, decode_meta

@pytest.mark.parametrize("meta,kind", [
  (0x0010, TypeKind.U8),
  (0x0020, TypeKind.U16),
  (0x0040, TypeKind.U32),
  (0x0080, TypeKind.U64),
  (0x0011, TypeKind.I8),
  (0x0021, TypeKind.I16),
  (0x0041, TypeKind.I32),
  (0x0081, TypeKind.I64),
  (0x0042, TypeKind.F32),
  (0x0082, TypeKind.F64),
  (0x0003, TypeKind.STRING),
  (0x00F3, TypeKind.STRING),
])
def test_known_types(meta, kind):
  assert decode_meta(meta).kind == kind

@pytest.mark.parametrize("meta", [0x0030, 0x0012, 0x0022, 0x0004, 0x004F, 0x00F0])
def test_invalid_combinations_are_unknown(meta):
  descriptor = decode_meta(meta)
  assert descriptor.kind == TypeKind.UNKNOWN
  assert descriptor.kind.value == ""
  assert not descriptor.unknown

def test_zero_is_unknown_endpoint():
  descriptor = decode_meta(0)
  assert descriptor.unknown
  assert descriptor.kind == TypeKind.UNKNOWN
  assert str(descriptor) == "?"

def test_flags():
  descriptor = decode_meta(0x0742)
  assert descriptor.kind == TypeKind.F32
  assert descriptor.width == 4
  assert descriptor.readable and descriptor.writable and descriptor.persistent
  assert descriptor.flags() == "rwp"
  assert str(descriptor) == "f32 rwp"
  readonly = decode_meta(0x0120)
  assert readonly.flags() == "r--"

def test_decode_is_total():
  for meta in range(0x10000):
    descriptor = decode_meta(meta)
    assert isinstance(descriptor.kind, TypeKind)
    if descriptor.kind.is_numeric:
      assert descriptor.width in (1, 2, 4, 8)

def test_parse_type_names():
  assert TypeKind.parse("i16") == TypeKind.I16
  assert TypeKind.parse(TypeKind.F64) == TypeKind.F64
  with pytest.raises(ValueError):
    TypeKind.parse("u24")
  with pytest.raises(ValueError):
    TypeKind.parse("")
