# jsx-to-html - Core Pipeline Components
"""
Core modules for the jsx-to-html build pipeline:
- discovery: Entry file discovery and the bundler input map
- grammar / transformer: Statement parsing and entry source rewriting
- artifacts: Bundle artifact models and the shared artifact store
- classifier / correlator: Post-bundle classification and dependency resolution
- sandbox: Isolated execution of compiled entries
- assembler: HTML document assembly and formatting
- pruner: Removal of intermediate artifacts
"""

from .errors import (
    ConfigurationError,
    DeclarationError,
    ExecutionError,
    JsxToHtmlError,
    ScratchIOError,
)
from .config import PluginConfig, load_config
from .discovery import ComponentEntry, build_input_map, discover_entries
from .transformer import SourceTransformer, format_asset_id, parse_source
from .artifacts import ArtifactStore, Asset, Chunk, OutputDocument, load_bundle
from .classifier import classify_bundle
from .correlator import correlate
from .sandbox import IsolatedExecutor, IsolatedRenderer, NodeExecutor, ScratchSpace
from .assembler import assemble_document, format_html
from .pruner import prune_bundle

__all__ = [
    'JsxToHtmlError',
    'ConfigurationError',
    'DeclarationError',
    'ExecutionError',
    'ScratchIOError',
    'PluginConfig',
    'load_config',
    'ComponentEntry',
    'discover_entries',
    'build_input_map',
    'SourceTransformer',
    'parse_source',
    'format_asset_id',
    'ArtifactStore',
    'Chunk',
    'Asset',
    'OutputDocument',
    'load_bundle',
    'classify_bundle',
    'correlate',
    'IsolatedExecutor',
    'NodeExecutor',
    'IsolatedRenderer',
    'ScratchSpace',
    'assemble_document',
    'format_html',
    'prune_bundle',
]
