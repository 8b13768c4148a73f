#!/usr/bin/env python3
"""
tio-rpc: call one RPC on a Twinleaf I/O device
License: MIT
"""

import tiorpc
import argparse
import logging
import sys

def main(argv=None):
  parser = argparse.ArgumentParser(prog='tio-rpc',
                                   description='Call an RPC on a Twinleaf I/O device.')

  parser.add_argument("name",
                      help='RPC name, ie dev.desc')
  parser.add_argument("arg",
                      nargs='?',
                      default=None,
                      help='Argument, parsed according to the request type')
  parser.add_argument("-r",
                      dest='url',
                      default='tcp://localhost',
                      help='Sensor root and path: tcp://localhost/0')
  parser.add_argument("-t", "--req-type",
                      default=None,
                      help='RPC request type (one of u8/u16/u32/u64 i8/i16/i32/i64 f32/f64 string)')
  parser.add_argument("-T", "--rep-type",
                      default=None,
                      help='RPC reply type (one of u8/u16/u32/u64 i8/i16/i32/i64 f32/f64 string)')
  parser.add_argument('-d',
                      action="store_true",
                      default=False,
                      help='Debug printouts')
  parser.add_argument('-v',
                      action="store_true",
                      default=False,
                      help='Verbose output for debugging')
  args = parser.parse_args(argv)

  for option in [args.req_type, args.rep_type]:
    if option is not None:
      try:
        tiorpc.TypeKind.parse(option)
      except ValueError as e:
        parser.error(str(e))

  try:
    session = tiorpc.TIOSession(args.url, verbose=args.v)
  except (tiorpc.TransportError, ValueError) as e:
    print(e, file=sys.stderr)
    return 1
  with session:
    client = tiorpc.RPCClient(session, debug=args.d)
    if args.d:
      logging.getLogger('tio-rpc').setLevel(logging.DEBUG)
    try:
      print(client.invoke(args.name, args.arg, req_type=args.req_type, rep_type=args.rep_type))
    except tiorpc.RPCError as e:
      print(e, file=sys.stderr)
      return 1
  return 0

if __name__ == "__main__":
  sys.exit(main())
