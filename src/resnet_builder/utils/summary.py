"""Tabular summaries of a ResNet layer graph."""
from typing import List, Tuple

from tabulate import tabulate

from ..models.builder import LayerGraph
from ..models.layers import ResidualMerge

HEADERS = ['Layer', 'Kind', 'Details', 'Output', 'Params']


def graph_rows(graph: LayerGraph, expand_blocks: bool = False) -> List[Tuple]:
    rows = []
    for layer in graph.layers:
        rows.append((layer.name, layer.kind, layer.describe(),
                     str(layer.output_shape), layer.num_parameters()))
        if expand_blocks and isinstance(layer, ResidualMerge):
            for inner in layer.main + layer.shortcut:
                rows.append(('  ' + inner.name, inner.kind, inner.describe(),
                             str(inner.output_shape), inner.num_parameters()))
    return rows


def format_graph(graph: LayerGraph, expand_blocks: bool = False,
                 tablefmt: str = 'github') -> str:
    config = graph.config
    title = (f'{config.name} input={graph.input_shape} output={graph.output_shape} '
             f'blocks={graph.stage_block_counts()} params={graph.num_parameters():,}')
    table = tabulate(graph_rows(graph, expand_blocks), headers=HEADERS, tablefmt=tablefmt)
    return title + '\n' + table


__all__ = ['graph_rows', 'format_graph', 'HEADERS']
