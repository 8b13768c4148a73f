#!/usr/bin/env python3
# coding: utf-8
"""
Twinleaf IO (tio) - Capture dispatch
Copyright 2024 Twinleaf LLC
License: MIT

Runs each triggered capture on its own worker thread and reports the
result to a presenter, ie a plot window, as emit(event_name, bytes).
"""

import threading
import queue
import logging
from .tio_capture import CaptureSession, CaptureState, samples_from_bytes, event_name

class CaptureTask(object):
  def __init__(self, element):
    self.element = element
    self.state = CaptureState.IDLE
    self.result = b''
    self.done = threading.Event()
    self.thread = None

  @property
  def samples(self):
    return samples_from_bytes(self.result)

  def wait(self, timeout=None):
    """Blocks until the capture completes; returns False on timeout."""
    return self.done.wait(timeout)

  def __repr__(self):
    return f"<CaptureTask {self.element} {self.state.value} {len(self.result)} bytes>"

class CaptureDispatcher(object):
  def __init__(self, client, presenter=None, index_type="u16", inclusive_last_block=True, serialize_per_element=True):
    self.client = client
    self.presenter = presenter
    self.index_type = index_type
    self.inclusive_last_block = inclusive_last_block
    self.serialize_per_element = serialize_per_element
    self.completions = queue.Queue()
    self.logger = logging.getLogger('tio-capture')
    self.lock = threading.Lock()
    self.element_locks = {}

  @classmethod
  def from_config(cls, client, presenter, config):
    return cls(client, presenter,
      index_type=config['index_type'],
      inclusive_last_block=config['inclusive_last_block'],
      serialize_per_element=config['serialize_per_element'])

  def element_lock(self, element):
    with self.lock:
      if element not in self.element_locks:
        self.element_locks[element] = threading.Lock()
      return self.element_locks[element]

  def trigger(self, element):
    task = CaptureTask(element)
    task.thread = threading.Thread(target=self.worker, args=(task,))
    task.thread.daemon = True
    task.thread.name = f"capture-{element}"
    task.thread.start()
    return task

  def worker(self, task):
    try:
      if self.serialize_per_element:
        with self.element_lock(task.element):
          self.capture(task)
      else:
        self.capture(task)
    except Exception as e:
      self.logger.exception(f"Capture on {task.element} crashed: {e}")
      task.state = CaptureState.FAILED
      task.result = b''
    try:
      if self.presenter is not None:
        self.presenter.emit(event_name(task.element), list(task.result))
    except Exception as e:
      self.logger.exception(f"Presenter failed for {task.element}: {e}")
    finally:
      task.done.set()
      self.completions.put(task)

  def capture(self, task):
    session = CaptureSession(task.element, self.client,
      index_type=self.index_type,
      inclusive_last_block=self.inclusive_last_block)
    task.result = session.run()
    task.state = session.state
