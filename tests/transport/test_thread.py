# tests/transport/test_thread.py
from __future__ import annotations

import queue

import pytest

import recordpack.transport.base as base
from recordpack.logsheet import MemoryLogsheet
from recordpack.package.work_package import WorkPackage
from recordpack.processor import WorkPackageProcessor
from recordpack.transport.messages import (
    SHUTDOWN,
    Ready,
    ShutdownComplete,
    Status,
    StatusKind,
    WorkerExited,
)
from recordpack.transport.thread import ThreadTransport


class EchoProcessor(WorkPackageProcessor):
    def new_processor(self, logsheet):
        return self

    def perform_initialization(self, logsheet):
        pass

    def process_work_package(self, package):
        pass


def _collect(transport, n):
    out = []
    for _ in range(n):
        rank, msg = transport.receive(timeout=5)
        assert rank == msg.rank
        out.append(msg)
    return out


def test_send_receive_broadcast():
    transport = ThreadTransport(2, join_timeout_s=5)
    with transport:
        transport.start(EchoProcessor(), MemoryLogsheet())
        ready = _collect(transport, 2)
        assert sorted(m.rank for m in ready) == [0, 1]
        assert all(isinstance(m, Ready) for m in ready)

        transport.send(1, WorkPackage(0, 1, [("a", b"1")]).pack())
        assert _collect(transport, 1) == [Status(1, 0, StatusKind.COMPLETED)]

        transport.broadcast(SHUTDOWN)
        done = _collect(transport, 2)
        assert sorted(done, key=lambda m: m.rank) == [
            ShutdownComplete(0, 0),
            ShutdownComplete(1, 1),
        ]


def test_start_twice_rejected():
    transport = ThreadTransport(1, join_timeout_s=5)
    with transport:
        transport.start(EchoProcessor(), MemoryLogsheet())
        with pytest.raises(RuntimeError):
            transport.start(EchoProcessor(), MemoryLogsheet())
        transport.broadcast(SHUTDOWN)


def test_num_workers_must_be_positive():
    with pytest.raises(ValueError):
        ThreadTransport(0)


def test_receive_timeout_returns_none(monkeypatch):
    monkeypatch.setattr(base, "POLL_INTERVAL_S", 0.05)
    transport = ThreadTransport(1)
    transport._results = queue.Queue()
    transport._is_alive = lambda rank: True
    assert transport.receive(timeout=0.1) is None


def test_dead_worker_reported_once_after_pending_messages(monkeypatch):
    monkeypatch.setattr(base, "POLL_INTERVAL_S", 0.05)
    transport = ThreadTransport(2)
    transport._results = queue.Queue()
    alive = {0: True, 1: False}
    transport._is_alive = lambda rank: alive[rank]

    transport._results.put(Status(1, 4, StatusKind.COMPLETED))
    assert transport.receive(timeout=1) == (1, Status(1, 4, StatusKind.COMPLETED))
    assert transport.receive(timeout=1) == (1, WorkerExited(1, None))
    # reported once; afterwards only the timeout remains
    assert transport.receive(timeout=0.2) is None


def test_confirmed_workers_are_not_reported_dead(monkeypatch):
    monkeypatch.setattr(base, "POLL_INTERVAL_S", 0.05)
    transport = ThreadTransport(1)
    transport._results = queue.Queue()
    transport._is_alive = lambda rank: False
    transport._results.put(ShutdownComplete(0, 3))

    assert transport.receive(timeout=1) == (0, ShutdownComplete(0, 3))
    assert transport.receive(timeout=0.2) is None
