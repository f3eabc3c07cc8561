from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger(__name__)

Task = Callable[[], object]

_STOP = object()


class WorkerPool:
    """
    固定 N 个工作线程 + 容量为 Q 的有界队列。

    - submit：队列满时阻塞调用方（背压），不丢任务也不报错
    - stop：不再接收新任务，已入队的任务全部执行完后线程退出
    - stop_immediately：不再接收新任务，已入队但未开始的任务整体丢弃，
      正在执行的任务允许跑完；任何任务要么完整执行，要么完全不执行
    - 任务抛异常只记日志，不影响工作线程
    """

    def __init__(self, *, workers: int = 10, queue_size: int = 1000, name: str = "ghwatch-worker") -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {queue_size}")
        self._workers = workers
        self._name = name
        self._queue: queue.Queue[object] = queue.Queue(maxsize=queue_size)
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._accepting = False
        self._discard = threading.Event()
        self._completed = 0
        self._failed = 0
        self._discarded = 0

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def queue_size(self) -> int:
        return self._queue.maxsize

    @property
    def running(self) -> bool:
        return self._accepting

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    @property
    def discarded(self) -> int:
        with self._lock:
            return self._discarded

    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        with self._lock:
            if self._accepting:
                return
            if self._threads:
                raise RuntimeError("worker pool cannot be restarted")
            self._accepting = True
            for i in range(self._workers):
                t = threading.Thread(target=self._work, name=f"{self._name}-{i}", daemon=True)
                self._threads.append(t)
                t.start()
        logger.debug("worker pool started: workers=%d queue_size=%d", self._workers, self._queue.maxsize)

    def submit(self, task: Task) -> None:
        if not self._accepting:
            raise RuntimeError("worker pool is not running")
        self._queue.put(task)

    def join(self) -> None:
        """阻塞直到当前已入队的任务全部处理完（执行或丢弃）。"""
        self._queue.join()

    def stop(self, timeout: float | None = None) -> None:
        if not self._close():
            return
        for _ in self._threads:
            self._queue.put(_STOP)
        self._join_threads(timeout)
        logger.debug("worker pool stopped: completed=%d failed=%d", self.completed, self.failed)

    def stop_immediately(self, timeout: float | None = None) -> None:
        if not self._close():
            return
        self._discard.set()
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            dropped += 1
            self._queue.task_done()
        with self._lock:
            self._discarded += dropped
        for _ in self._threads:
            self._queue.put(_STOP)
        self._join_threads(timeout)
        if self.discarded:
            logger.info("worker pool stopped immediately: discarded=%d", self.discarded)

    def _close(self) -> bool:
        with self._lock:
            if not self._accepting:
                return False
            self._accepting = False
            return True

    def _join_threads(self, timeout: float | None) -> None:
        for t in self._threads:
            t.join(timeout)

    def _work(self) -> None:
        while True:
            task = self._queue.get()
            try:
                if task is _STOP:
                    return
                if self._discard.is_set():
                    with self._lock:
                        self._discarded += 1
                    continue
                self._run(task)  # type: ignore[arg-type]
            finally:
                self._queue.task_done()

    def _run(self, task: Task) -> None:
        try:
            task()
        except Exception:  # noqa: BLE001
            with self._lock:
                self._failed += 1
            logger.exception("task failed: task=%r", task)
            return
        with self._lock:
            self._completed += 1
