import os, psutil, torch
from torch import nn


def count_parameters(model: nn.Module, trainable_only: bool = False) -> int:
    return sum(p.numel() for p in model.parameters() if p.requires_grad or not trainable_only)


class MemoryMonitor:
    """Context manager capturing host RSS delta and peak device memory (CUDA only).

    Results are available on `.result` after the block exits.
    """
    def __init__(self, device: str):
        self.device = device
        self.result = {}
        self._process = psutil.Process(os.getpid())

    def _cuda(self) -> bool:
        return self.device == 'cuda' and torch.cuda.is_available()

    def __enter__(self):
        self._rss_before = self._process.memory_info().rss
        if self._cuda():
            torch.cuda.reset_peak_memory_stats()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.result = {
            'host_mem_delta': self._process.memory_info().rss - self._rss_before,
            'device_peak_mem': torch.cuda.max_memory_allocated() if self._cuda() else None,
        }


__all__ = ['count_parameters', 'MemoryMonitor']
