import pytest
import torch
from torch import nn

from resnet_builder.utils.device import autocast_context, normalize_precision, resolve_device
from resnet_builder.utils.metrics import Timer, TimingStats, accuracy
from resnet_builder.utils.profiling import MemoryMonitor, count_parameters


def test_accuracy_top1_and_topk():
    logits = torch.tensor([[0.1, 0.9, 0.0], [0.8, 0.15, 0.05], [0.2, 0.3, 0.5]])
    targets = torch.tensor([1, 1, 0])
    assert accuracy(logits, targets) == pytest.approx(1 / 3)
    assert accuracy(logits, targets, topk=2) == pytest.approx(2 / 3)


def test_timing_stats():
    stats = TimingStats([0.001, 0.002, 0.003])
    d = stats.to_dict()
    assert d['count'] == 3
    assert d['mean_ms'] == pytest.approx(2.0)
    assert d['p95_ms'] == pytest.approx(3.0)
    assert stats.throughput(4) == pytest.approx(2000.0)
    with pytest.raises(ValueError):
        TimingStats([])


def test_timer():
    with Timer() as t:
        pass
    assert t.dt >= 0


def test_precision_and_device():
    assert normalize_precision('BF16') == 'bf16'
    with pytest.raises(ValueError):
        normalize_precision('int8')
    assert resolve_device('cpu') == 'cpu'
    assert resolve_device('auto') in ('cuda', 'xpu', 'mps', 'cpu')
    with autocast_context('cpu', 'fp16'):
        assert torch.ones(1).dtype == torch.float32


def test_count_parameters_and_memory_monitor():
    model = nn.Linear(4, 2)
    model.bias.requires_grad_(False)
    assert count_parameters(model) == 10
    assert count_parameters(model, trainable_only=True) == 8
    with MemoryMonitor('cpu') as mem:
        torch.zeros(1024)
    assert set(mem.result) == {'host_mem_delta', 'device_peak_mem'}
    assert mem.result['device_peak_mem'] is None
