# v5.0
import numpy as np
from typing import Tuple


class YinProcessor:
    """
    YINアルゴリズムによる基本周波数推定。

    1フレーム分の窓 (RingSampleBuffer のスナップショット) を受け取り、
    周波数 [Hz] を返す。無声・推定不能のときは 0.0。
    差分関数は FFT による相互相関と累積和で計算する (O(N log N))。
    """
    def __init__(self, sample_rate: float, min_freq: float = 60.0, max_freq: float = 1200.0,
                 threshold: float = 0.20):
        if not 0 < min_freq < max_freq:
            raise ValueError(f"invalid frequency range: {min_freq}-{max_freq}")
        self.sample_rate = float(sample_rate)
        self.min_freq = float(min_freq)
        self.max_freq = float(max_freq)
        self.threshold = float(threshold)

        self.min_period = max(2, int(self.sample_rate / self.max_freq))
        self.max_period = int(self.sample_rate / self.min_freq)

    def required_length(self) -> int:
        """推定に必要な最小サンプル数 (= 窓の半分 + 最大周期)"""
        return 2 * self.max_period

    def estimate(self, signal: np.ndarray) -> float:
        freq, confidence = self.process(signal)
        if freq <= 0 or confidence >= self.threshold:
            return 0.0
        return freq

    def process(self, signal: np.ndarray) -> Tuple[float, float]:
        """
        (周波数, CMNDF値) を返す。CMNDF値は小さいほど信頼度が高い。
        """
        signal = np.asarray(signal, dtype=np.float64)
        signal = signal - np.mean(signal)
        peak = np.max(np.abs(signal)) if len(signal) else 0.0
        if peak < 1e-6:
            return 0.0, 1.0
        signal = signal / peak

        window = len(signal) // 2
        if window < self.max_period or len(signal) < window + self.max_period:
            return 0.0, 1.0

        cmndf = self._cmndf(signal, window)

        # --- 絶対閾値: 最初に閾値を下回った谷を採用 ---
        search = cmndf[self.min_period:self.max_period]
        below = np.nonzero(search < self.threshold)[0]
        if len(below) > 0:
            tau = below[0] + self.min_period
            while tau + 1 < self.max_period and cmndf[tau + 1] < cmndf[tau]:
                tau += 1
        else:
            tau = int(np.argmin(search)) + self.min_period
            if cmndf[tau] >= 1.0:
                return 0.0, 1.0

        period = self._parabolic_interpolation(cmndf, tau)
        return self.sample_rate / period, float(cmndf[tau])

    def _cmndf(self, signal: np.ndarray, window: int) -> np.ndarray:
        # d(tau) = sum(x[j]^2) + sum(x[j+tau]^2) - 2 * sum(x[j] * x[j+tau])
        x = signal[:window]
        energy = np.sum(x ** 2)

        cum_sq = np.concatenate(([0.0], np.cumsum(signal ** 2)))
        taus = np.arange(self.max_period)
        shifted_energy = cum_sq[taus + window] - cum_sq[taus]

        n_fft = 1
        while n_fft < len(signal) + window:
            n_fft *= 2
        spectrum = np.fft.rfft(x[::-1], n=n_fft) * np.fft.rfft(signal, n=n_fft)
        correlation = np.fft.irfft(spectrum, n=n_fft)[window - 1:window - 1 + self.max_period]

        diff = np.maximum(energy + shifted_energy - 2 * correlation, 0.0)

        cumulative = np.cumsum(diff)
        cumulative[0] = 1.0
        with np.errstate(divide="ignore", invalid="ignore"):
            cmndf = diff * taus / cumulative
        cmndf[0] = 1.0
        return np.nan_to_num(cmndf, nan=1.0, posinf=1.0)

    def _parabolic_interpolation(self, cmndf: np.ndarray, tau: int) -> float:
        period = float(tau)
        if 0 < tau < len(cmndf) - 1:
            y1, y2, y3 = cmndf[tau - 1], cmndf[tau], cmndf[tau + 1]
            denom = y1 - 2 * y2 + y3
            if abs(denom) > 1e-9:
                period += 0.5 * (y1 - y3) / denom
        return period
