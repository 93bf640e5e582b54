import time, statistics
import torch
from typing import List, Dict


def accuracy(outputs: torch.Tensor, targets: torch.Tensor, topk: int = 1) -> float:
    """Fraction of rows whose target is among the `topk` highest logits."""
    preds = outputs.topk(topk, dim=1).indices
    return (preds == targets.unsqueeze(1)).any(dim=1).float().mean().item()


class TimingStats:
    """Summary statistics over per-iteration latencies (seconds in, ms out)."""
    def __init__(self, samples: List[float]):
        if not samples:
            raise ValueError("no timing samples collected")
        self.samples = list(samples)
        self.count = len(samples)
        self.mean = statistics.fmean(samples)
        self.median = statistics.median(samples)
        # p95 needs enough samples to be meaningful
        self.p95 = statistics.quantiles(samples, n=100)[94] if self.count >= 20 else max(samples)
        self.min = min(samples)
        self.max = max(samples)

    def throughput(self, batch_size: int) -> float:
        return batch_size / self.mean

    def to_dict(self) -> Dict[str, float]:
        return {
            'count': self.count,
            'mean_ms': self.mean * 1000,
            'median_ms': self.median * 1000,
            'p95_ms': self.p95 * 1000,
            'min_ms': self.min * 1000,
            'max_ms': self.max * 1000,
        }


class Timer:
    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dt = time.perf_counter() - self._t0


__all__ = ['accuracy', 'TimingStats', 'Timer']
