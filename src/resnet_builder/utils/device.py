import torch
from contextlib import contextmanager

PRECISIONS = ('fp32', 'fp16', 'bf16')


def auto_device() -> str:
    if torch.cuda.is_available():
        return 'cuda'
    if hasattr(torch, 'xpu') and torch.xpu.is_available():
        return 'xpu'
    if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return 'mps'
    return 'cpu'


def resolve_device(device: str | None = 'auto') -> str:
    """'auto' / None picks the best available backend, anything else is passed through."""
    if device in (None, 'auto'):
        return auto_device()
    return device


def device_properties(device: str) -> dict:
    props = {'device': device}
    if device == 'cuda':
        p = torch.cuda.get_device_properties(torch.cuda.current_device())
        props.update({
            'name': p.name,
            'total_memory': p.total_memory,
            'multi_processor_count': p.multi_processor_count,
            'capability': f'{p.major}.{p.minor}'
        })
    return props


def synchronize(device: str):
    if device == 'cuda':
        torch.cuda.synchronize()


def normalize_precision(prec: str) -> str:
    prec = prec.lower()
    if prec not in PRECISIONS:
        raise ValueError('precision must be one of ' + '|'.join(PRECISIONS))
    return prec


@contextmanager
def autocast_context(device: str, precision: str):
    """Mixed precision for accelerator backends; fp32 and CPU run unchanged."""
    precision = normalize_precision(precision)
    if precision == 'fp32' or device not in ('cuda', 'xpu', 'mps'):
        yield
        return
    dtype = torch.bfloat16 if precision == 'bf16' else torch.float16
    with torch.amp.autocast(device_type=device, dtype=dtype):
        yield


__all__ = ['auto_device', 'resolve_device', 'device_properties', 'synchronize',
           'autocast_context', 'normalize_precision', 'PRECISIONS']
