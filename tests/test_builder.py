import pytest

from resnet_builder.errors import InvalidShape, InvalidVersion
from resnet_builder.models import (ArchitectureConfig, BlockKind, RunningShape, build_graph,
                                   build_resnet, build_resnet_from_shape)
from resnet_builder.models.layers import (Activation, BatchNorm, Convolution, Linear, Padding,
                                          Pooling, ResidualMerge)

TABLE = {
    18: (2, 2, 2, 2),
    34: (3, 4, 6, 3),
    50: (3, 4, 6, 3),
    101: (3, 4, 23, 3),
    152: (3, 8, 36, 3),
}


@pytest.mark.parametrize('version', sorted(TABLE))
def test_stage_block_counts_match_table(version):
    graph = build_resnet(version=version)
    assert graph.stage_block_counts() == TABLE[version]
    assert len(graph.blocks()) == sum(TABLE[version])


@pytest.mark.parametrize('version', [0, 36, 200, 'resnet36'])
def test_invalid_version(version):
    with pytest.raises(InvalidVersion):
        build_resnet(version=version)


def test_resnet18_end_to_end():
    graph = build_resnet(channels=3, width=224, height=224, version=18,
                         include_top=True, num_classes=1000)
    stem, blocks, head = graph.layers[:5], graph.layers[5:13], graph.layers[13:]

    assert [type(l) for l in stem] == [Convolution, BatchNorm, Activation, Padding, Pooling]
    conv1 = stem[0]
    assert (conv1.in_channels, conv1.out_channels, conv1.kernel_size, conv1.stride,
            conv1.padding) == (3, 64, 7, 2, 3)
    assert conv1.output_shape == RunningShape(64, 112, 112)
    assert stem[3].output_shape == RunningShape(64, 114, 114)
    assert stem[4].output_shape == RunningShape(64, 56, 56)
    assert (stem[4].kernel_size, stem[4].stride, stem[4].padding) == (3, 2, 0)

    assert len(blocks) == 8
    assert all(isinstance(b, ResidualMerge) and b.block is BlockKind.BASIC for b in blocks)

    assert len(head) == 2
    avgpool, fc = head
    assert isinstance(avgpool, Pooling) and avgpool.mode == 'adaptive_avg'
    assert avgpool.output_shape == RunningShape(512, 1, 1)
    assert isinstance(fc, Linear)
    assert (fc.in_features, fc.out_features) == (512, 1000)
    assert graph.head is fc
    assert graph.output_shape == RunningShape(1000, 1, 1)


def test_imagenet_stage_resolutions():
    graph = build_resnet(version=50)
    last = [graph.stage_blocks(i)[-1].output_shape for i in range(4)]
    assert last == [RunningShape(256, 56, 56), RunningShape(512, 28, 28),
                    RunningShape(1024, 14, 14), RunningShape(2048, 7, 7)]
    assert graph.feature_shape() == RunningShape(2048, 7, 7)


def test_builds_are_idempotent():
    config = ArchitectureConfig(version=50, input_width=97, input_height=61, num_classes=7)
    assert build_graph(config) == build_graph(config)
    assert build_graph(config) != build_graph(ArchitectureConfig(version=50))


@pytest.mark.parametrize('version', sorted(TABLE))
def test_downsample_only_where_needed(version):
    graph = build_resnet(version=version)
    for block in graph.blocks():
        needs = block.stride != 1 or block.in_channels != block.out_channels
        assert block.has_downsample == needs
        if block.index > 0:
            assert not block.has_downsample
            assert block.stride == 1


def test_downsample_placement_basic_vs_bottleneck():
    basic = build_resnet(version=18)
    assert [b.has_downsample for b in basic.blocks() if b.index == 0] == [False, True, True, True]
    bottleneck = build_resnet(version=50)
    assert [b.has_downsample for b in bottleneck.blocks() if b.index == 0] == [True, True, True, True]


def test_downsample_shortcut_layers():
    block = build_resnet(version=18).stage_blocks(1)[0]
    conv, bn = block.shortcut
    assert isinstance(conv, Convolution) and isinstance(bn, BatchNorm)
    assert (conv.in_channels, conv.out_channels, conv.kernel_size, conv.stride,
            conv.padding) == (64, 128, 1, 2, 0)
    assert conv.name == 'layer2.0.downsample.0'
    assert bn.name == 'layer2.0.downsample.1'
    assert bn.num_features == 128


def test_channel_progression_tracks_previous_stage():
    graph = build_resnet(version=101)
    firsts = [graph.stage_blocks(i)[0] for i in range(4)]
    assert [b.in_channels for b in firsts] == [64, 256, 512, 1024]
    assert [b.out_channels for b in firsts] == [256, 512, 1024, 2048]


def test_basic_block_layout():
    block = build_resnet(version=34).stage_blocks(2)[0]
    kinds = [type(l) for l in block.main]
    assert kinds == [Convolution, BatchNorm, Activation, Convolution, BatchNorm]
    conv1, conv2 = block.main[0], block.main[3]
    assert (conv1.in_channels, conv1.out_channels, conv1.kernel_size, conv1.stride) == (128, 256, 3, 2)
    assert (conv2.in_channels, conv2.out_channels, conv2.kernel_size, conv2.stride) == (256, 256, 3, 1)
    assert block.activation == 'relu'


def test_bottleneck_block_layout():
    block = build_resnet(version=50).stage_blocks(1)[0]
    kinds = [type(l) for l in block.main]
    assert kinds == [Convolution, BatchNorm, Activation, Convolution, BatchNorm, Activation,
                     Convolution, BatchNorm]
    convs = [l for l in block.main if isinstance(l, Convolution)]
    assert [(c.in_channels, c.out_channels, c.kernel_size, c.stride) for c in convs] == [
        (256, 128, 1, 1), (128, 128, 3, 2), (128, 512, 1, 1)]
    assert block.output_shape == RunningShape(512, 28, 28)


@pytest.mark.parametrize('version,features', [(18, 512), (34, 512), (50, 2048),
                                              (101, 2048), (152, 2048)])
def test_head_width(version, features):
    fc = build_resnet(version=version, num_classes=10).head
    assert (fc.in_features, fc.out_features) == (features, 10)


def test_without_head():
    graph = build_resnet(version=18, include_top=False)
    assert graph.head is None
    assert isinstance(graph.layers[-1], ResidualMerge)
    assert graph.output_shape == RunningShape(512, 7, 7)


def test_non_square_input_and_channels():
    graph = build_resnet_from_shape((1, 65, 47), version=18, include_top=False)
    assert graph.layers[0].in_channels == 1
    assert graph.layers[0].output_shape == RunningShape(64, 33, 24)
    assert graph.layers[4].output_shape == RunningShape(64, 17, 12)
    assert graph.output_shape == RunningShape(512, 3, 2)


def test_tiny_input_still_valid():
    graph = build_resnet(width=1, height=1, version=152)
    assert graph.feature_shape() == RunningShape(2048, 1, 1)


@pytest.mark.parametrize('dims', [(3, 0, 224), (3, 224, -4), (0, 224, 224)])
def test_non_positive_input_is_invalid_shape(dims):
    with pytest.raises(InvalidShape):
        build_resnet_from_shape(dims, version=18)


def test_non_positive_classes_is_invalid_shape():
    with pytest.raises(InvalidShape):
        build_resnet(version=18, num_classes=0)
    assert build_resnet(version=18, num_classes=0, include_top=False).head is None


def test_layer_names_are_torchvision_names():
    graph = build_resnet(version=50)
    top = [l.name for l in graph.layers if not isinstance(l, ResidualMerge)]
    assert top == ['conv1', 'bn1', 'relu', 'pad', 'maxpool', 'avgpool', 'fc']
    block = graph.stage_blocks(3)[2]
    assert block.name == 'layer4.2'
    assert [l.name for l in block.main if isinstance(l, Convolution)] == [
        'layer4.2.conv1', 'layer4.2.conv2', 'layer4.2.conv3']


def test_parameter_count_resnet18():
    assert build_resnet(version=18).num_parameters() == 11_689_512


def test_parameter_count_resnet50():
    assert build_resnet(version=50).num_parameters() == 25_557_032


def test_float_dims_are_invalid_shape():
    with pytest.raises(InvalidShape):
        build_resnet(width=224.0, version=18)
    with pytest.raises(InvalidShape):
        build_resnet(version=18, num_classes=10.0)
