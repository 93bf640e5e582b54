import pytest

from resnet_builder.errors import InvalidShape
from resnet_builder.models.layers import (BatchNorm, Convolution, Linear, RunningShape,
                                          conv_out_size)


def test_conv_out_size_stem():
    assert conv_out_size(224, kernel=7, stride=2, padding=3) == 112


def test_conv_out_size_maxpool_after_padding():
    assert conv_out_size(112 + 2, kernel=3, stride=2, padding=0) == 56


@pytest.mark.parametrize('size,kernel,stride,padding,expected', [
    (56, 3, 1, 1, 56),
    (56, 3, 2, 1, 28),
    (56, 1, 2, 0, 28),
    (7, 3, 2, 1, 4),
    (1, 7, 2, 3, 1),
])
def test_conv_out_size_floors(size, kernel, stride, padding, expected):
    assert conv_out_size(size, kernel, stride, padding) == expected


def test_conv_out_size_rejects_zero_stride():
    with pytest.raises(InvalidShape):
        conv_out_size(10, 3, 0, 1)


def test_running_shape_window_and_padding():
    shape = RunningShape(3, 224, 200)
    out = shape.window(64, 7, 2, 3, 'conv1')
    assert out == RunningShape(64, 112, 100)
    assert out.padded(1) == RunningShape(64, 114, 102)
    assert out.as_tuple() == (64, 112, 100)
    assert str(out) == '64x112x100'


def test_running_shape_collapse_names_layer():
    with pytest.raises(InvalidShape, match='conv1'):
        RunningShape(3, 0, 10).window(64, 7, 2, 3, 'conv1')


def test_descriptor_parameter_counts():
    shape = RunningShape(64, 56, 56)
    conv = Convolution('conv1', 3, 64, 7, 2, 3, shape)
    bn = BatchNorm('bn1', 64, shape)
    fc = Linear('fc', 512, 1000, RunningShape(1000, 1, 1))
    assert conv.num_parameters() == 3 * 64 * 49
    assert conv.parameter_shapes() == {'conv1.weight': (64, 3, 7, 7)}
    assert bn.num_parameters() == 128
    assert fc.num_parameters() == 512 * 1000 + 1000
    assert fc.parameter_shapes()['fc.weight'] == (1000, 512)


def test_descriptors_are_immutable():
    bn = BatchNorm('bn1', 64, RunningShape(64, 1, 1))
    with pytest.raises(AttributeError):
        bn.num_features = 32
