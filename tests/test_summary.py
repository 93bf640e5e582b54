from resnet_builder.models import build_resnet
from resnet_builder.utils.summary import HEADERS, format_graph, graph_rows


def test_rows_follow_graph():
    graph = build_resnet(version=18)
    rows = graph_rows(graph)
    assert len(rows) == len(graph)
    assert rows[0] == ('conv1', 'convolution', '3->64, 7x7, stride 2, pad 3', '64x112x112', 9408)
    assert rows[-1][0] == 'fc'
    assert sum(r[-1] for r in rows) == graph.num_parameters()


def test_expanded_rows_include_block_internals():
    graph = build_resnet(version=50)
    rows = graph_rows(graph, expand_blocks=True)
    names = [r[0].strip() for r in rows]
    assert 'layer1.0.downsample.0' in names
    assert 'layer4.2.conv3' in names


def test_format_graph():
    text = format_graph(build_resnet(version=34, num_classes=10))
    title = text.splitlines()[0]
    assert title.startswith('resnet34 input=3x224x224 output=10x1x1')
    assert 'blocks=(3, 4, 6, 3)' in title
    for header in HEADERS:
        assert header in text
    assert 'layer3.5' in text
