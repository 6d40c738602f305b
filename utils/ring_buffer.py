# v1.0
import threading
from typing import Iterable, Iterator, Optional

import numpy as np


class RingSampleBuffer:
    """
    固定長のリングバッファ（古いサンプルから上書き）。

    キャプチャ側（PyAudioコールバック）が書き込み、解析スレッドが
    snapshot() で窓全体を取り出す。書き込みとコピーは同じロックで保護するため、
    解析側が書き換え途中の窓を見ることはない。
    インデックス 0 が最も古いサンプル。
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive: {capacity}")
        self.capacity = int(capacity)
        self._buffer = np.zeros(self.capacity, dtype=np.float32)
        self._start = 0
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == self.capacity

    def __len__(self) -> int:
        return self._count

    def add(self, sample: float):
        with self._lock:
            self._add_unlocked(sample)

    def extend(self, samples: Iterable[float]):
        """チャンク単位の書き込み。ロック取得は1回だけ。"""
        with self._lock:
            for sample in samples:
                self._add_unlocked(sample)

    def _add_unlocked(self, sample: float):
        index = (self._start + self._count) % self.capacity
        self._buffer[index] = sample
        if self._count == self.capacity:
            self._start = (self._start + 1) % self.capacity
        else:
            self._count += 1

    def __getitem__(self, index: int) -> float:
        if not 0 <= index < self._count:
            raise IndexError(f"ring buffer index out of range: {index} (count={self._count})")
        return float(self._buffer[(self._start + index) % self.capacity])

    def __iter__(self) -> Iterator[float]:
        # iter() のたびに先頭（最古）から読み直す
        for i in range(self._count):
            yield self[i]

    def snapshot(self) -> Optional[np.ndarray]:
        """
        バッファが満杯なら、古い順に並べたコピーを返す。
        まだ溜まっていない場合は None（そのフレームはスキップ）。
        """
        with self._lock:
            if self._count < self.capacity:
                return None
            return np.roll(self._buffer, -self._start)

    def clear(self):
        with self._lock:
            self._buffer.fill(0)
            self._start = 0
            self._count = 0
