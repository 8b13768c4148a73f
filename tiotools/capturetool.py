#!/usr/bin/env python3
"""
tio-capture: trigger a capture on a Twinleaf I/O device and print the samples
License: MIT
"""

import tiorpc
import tiocapture
import argparse
import sys

class PrintPresenter(object):
  def __init__(self, stream=None):
    self.stream = stream if stream is not None else sys.stdout

  def emit(self, name, payload):
    samples = tiocapture.samples_from_bytes(bytes(payload))
    self.stream.write(f"# {name}: {len(samples)} samples\n")
    for sample in samples:
      self.stream.write(f"{sample:.7g}\n")

def main(argv=None):
  parser = argparse.ArgumentParser(prog='tio-capture',
                                   description='Read a block capture from a Twinleaf I/O device.')

  parser.add_argument("element",
                      help='Element owning the capture, ie vector')
  parser.add_argument("-r",
                      dest='url',
                      default=None,
                      help='Sensor root and path: tcp://localhost/0')
  parser.add_argument("-c", "--config",
                      default=None,
                      help='YAML settings file')
  parser.add_argument("-t", "--index-type",
                      default=None,
                      help='Type of the block index argument (default u16)')
  parser.add_argument('--exclusive-last',
                      action="store_const",
                      const=False,
                      default=None,
                      dest='inclusive_last_block',
                      help='Fetch blocks 0..count-1 instead of 0..count')
  parser.add_argument('-v',
                      action="store_const",
                      const=True,
                      default=None,
                      dest='verbose',
                      help='Verbose output for debugging')
  args = parser.parse_args(argv)

  try:
    config = tiocapture.load_config(args.config,
      url=args.url,
      index_type=args.index_type,
      inclusive_last_block=args.inclusive_last_block,
      verbose=args.verbose)
  except (tiocapture.ConfigError, OSError) as e:
    parser.error(str(e))

  try:
    session = tiorpc.TIOSession(config['url'], verbose=config['verbose'], timeout=config['timeout'])
  except (tiorpc.TransportError, ValueError) as e:
    print(e, file=sys.stderr)
    return 1
  with session:
    client = tiorpc.RPCClient(session, debug=config['debug'])
    dispatcher = tiocapture.CaptureDispatcher.from_config(client, PrintPresenter(), config)
    task = dispatcher.trigger(args.element)
    task.wait()
  if task.state == tiocapture.CaptureState.FAILED:
    return 1
  return 0

if __name__ == "__main__":
  sys.exit(main())
