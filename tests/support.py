"""Helpers shared by the test modules: parse Java snippets into units."""
import shutil
import textwrap
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from tree_sitter import Node

from minrepro.analyzer.extractor import DeclarationExtractor, SourceUnit
from minrepro.analyzer.parser import JavaSourceParser, node_text, walk
from minrepro.analyzer.resolver import MemberResolver
from minrepro.analyzer.symbol_index import SymbolIndex

FIXTURES_DIR = Path(__file__).parent / 'fixtures' / 'java'

_parser = JavaSourceParser()
_extractor = DeclarationExtractor()


def parse_unit(relative_path: str, source) -> SourceUnit:
    data = textwrap.dedent(source).encode('utf-8') if isinstance(source, str) else source
    return _extractor.extract(_parser.parse_source(data), data, relative_path)


def build(files: Dict[str, str]) -> Tuple[List[SourceUnit], MemberResolver]:
    units = [parse_unit(path, source) for path, source in files.items()]
    return units, MemberResolver(SymbolIndex.from_units(units))


def nodes_of(unit: SourceUnit, node_type: str) -> Iterator[Node]:
    return (node for node in walk(unit.tree.root_node) if node.type == node_type)


def find_node(unit: SourceUnit, node_type: str, text: str) -> Node:
    """First node of ``node_type`` whose text starts with ``text``."""
    for node in nodes_of(unit, node_type):
        if node_text(node).startswith(text):
            return node
    raise LookupError(f"no {node_type} starting with {text!r}")


def copy_fixtures(destination: Path) -> Path:
    shutil.copytree(FIXTURES_DIR, destination)
    return destination
