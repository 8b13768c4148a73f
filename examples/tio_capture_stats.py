#!/usr/bin/env python3
"""
Trigger a capture and print summary statistics of the samples.

  python tio_capture_stats.py tcp://localhost vector
"""

import tiorpc
import tiocapture
import statistics
import sys

url = sys.argv[1] if len(sys.argv) > 1 else "tcp://localhost"
element = sys.argv[2] if len(sys.argv) > 2 else "vector"

with tiorpc.TIOSession(url) as session:
  client = tiorpc.RPCClient(session)
  print(client.invoke("dev.desc"))
  capture = tiocapture.CaptureSession(element, client)
  capture.run()

samples = capture.samples
print(f"{len(samples)} samples from {element} ({capture.state.value})")
if samples:
  print(f"mean {statistics.mean(samples):.6g}, min {min(samples):.6g}, max {max(samples):.6g}")
