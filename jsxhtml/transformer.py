"""
Source Transformer - Rewrites component entries for rendering.

Entries get a footer that renders their default export and exports the ids of
the scripts and stylesheets they import. Style and script modules seen by the
bundler are handed back as assets named with the same ids, so the correlator
can find them by file name after bundling.
"""

import os
import re
from typing import Dict, List, Literal, Optional

from lark import Lark, Transformer
from lark.exceptions import LarkError
from pydantic import BaseModel, ConfigDict, Field

from jsxhtml.config import SCRIPT_EXTENSIONS, STYLE_EXTENSIONS
from jsxhtml.errors import DeclarationError
from jsxhtml.grammar import statement_grammar
from jsxhtml.reporting import debug_log
from jsxhtml.runtime import get_render_footer

MAX_STATEMENT_LINES = 50

_parser = None


def get_parser():
    """Build the statement parser once per process."""
    global _parser
    if _parser is None:
        _parser = Lark(statement_grammar, parser='earley')
    return _parser


class ImportRecord(BaseModel):
    specifier: str
    bindings: List[str] = Field(default_factory=list)
    kind: Literal["script", "style", "module"] = "module"


class SourceSummary(BaseModel):
    """What the scanner understood about one module."""
    has_default_export: bool = False
    exported_name: Optional[str] = None
    imports: List[ImportRecord] = Field(default_factory=list)

    @property
    def script_imports(self):
        return [i.specifier for i in self.imports if i.kind == "script"]

    @property
    def style_imports(self):
        return [i.specifier for i in self.imports if i.kind == "style"]


class Declaration(BaseModel):
    """The render contract an entry module declared at transform time."""
    model_config = ConfigDict(frozen=True)

    module_id: str
    logical_name: str
    component: str
    script_ids: List[str] = Field(default_factory=list)
    style_ids: List[str] = Field(default_factory=list)
    # asset id -> absolute path of the module it was minted from
    sources: Dict[str, str] = Field(default_factory=dict)


class EmittedAsset(BaseModel):
    name: str
    source: str
    kind: Literal["script", "style"]
    module_id: str


class TransformResult(BaseModel):
    code: str
    summary: Optional[SourceSummary] = None
    declaration: Optional[Declaration] = None
    emitted: List[EmittedAsset] = Field(default_factory=list)


# ==========================================
# STATEMENT SCANNING
# ==========================================

_BLOCK_COMMENT_RE = re.compile(r'/\*[\s\S]*?\*/')
_IMPORT_START_RE = re.compile(r'import(?=[\s{*\'"])')
_IMPORT_END_RE = re.compile(r'([\'"])[^\'"\n]*\1\s*;?\s*$')
_EXPORT_LIST_END_RE = re.compile(r'\}\s*(?:from\s*([\'"])[^\'"\n]*\1)?\s*;?\s*$')
_DEFAULT_HEAD_RE = re.compile(r'[({;]')
_TRAILING_COMMENT_RE = re.compile(r'\s+//[^\'"]*$')


def _blank_comments(code):
    """Replace block comments with newlines so line numbers survive."""
    return _BLOCK_COMMENT_RE.sub(lambda m: "\n" * m.group(0).count("\n"), code)


def _default_head(line):
    """Cut `export default ...` at its first delimiter, keeping the delimiter."""
    match = _DEFAULT_HEAD_RE.search(line)
    if match is None:
        return line
    return line[:match.end()]


def scan_statements(code):
    """
    Yield (line_number, text) for every top-level import/export statement.

    This is a lexical scan: a line that starts with `import` or `export`
    inside a template literal is also picked up. Multi-line imports and
    export lists are joined until their closing string or brace.
    """
    lines = _blank_comments(code).split("\n")
    i = 0
    while i < len(lines):
        stripped = _TRAILING_COMMENT_RE.sub("", lines[i].strip())
        start = i + 1
        i += 1

        if _IMPORT_START_RE.match(stripped):
            end_re = _IMPORT_END_RE
        elif stripped.startswith("export default"):
            yield start, _default_head(stripped)
            continue
        elif re.match(r'export\s*\{', stripped):
            end_re = _EXPORT_LIST_END_RE
        else:
            continue

        buffer = [stripped]
        while not end_re.search(" ".join(buffer)) and i < len(lines) and len(buffer) < MAX_STATEMENT_LINES:
            buffer.append(_TRAILING_COMMENT_RE.sub("", lines[i].strip()))
            i += 1
        text = " ".join(buffer)
        if end_re.search(text):
            yield start, text
        else:
            # Unterminated; rescan the following lines on their own
            i = start


class _Default:
    """Marker returned by the statement reader for default-export forms."""

    def __init__(self, name, recognizable=True):
        self.name = name
        self.recognizable = recognizable


_ASYNC = object()
_GENERATOR = object()


class StatementReader(Transformer):
    """
    Turns one parsed statement into an ImportRecord, a _Default, or a list
    of (local, exported) pairs for export lists.
    """

    def start(self, args):
        return args[0]

    def side_effect_import(self, args):
        return ImportRecord(specifier=args[0])

    def binding_import(self, args):
        clause, specifier = args
        return ImportRecord(specifier=specifier, bindings=clause)

    def import_clause(self, args):
        bindings = []
        for arg in args:
            if isinstance(arg, list):
                bindings.extend(arg)
            else:
                bindings.append(arg)
        return bindings

    def namespace_import(self, args):
        return [args[0]]

    def named_imports(self, args):
        return list(args)

    def import_spec(self, args):
        return args[-1]

    def string_import_spec(self, args):
        return args[-1]

    def default_import_spec(self, args):
        return args[0]

    def default_function(self, args):
        flags, name = args[0]
        # Async and generator components cannot render to static markup
        return _Default(name, recognizable=name is not None and not flags)

    def function_head(self, args):
        flags = [a for a in args if a is _ASYNC or a is _GENERATOR]
        names = [a for a in args if isinstance(a, str)]
        return flags, (names[0] if names else None)

    def async_kw(self, args):
        return _ASYNC

    def generator(self, args):
        return _GENERATOR

    def default_class(self, args):
        name = args[0]
        return _Default(name, recognizable=name is not None)

    def class_head(self, args):
        names = [a for a in args if isinstance(a, str)]
        return names[0] if names else None

    def superclass(self, args):
        return tuple(args)

    def default_identifier(self, args):
        return _Default(args[0])

    def export_list(self, args):
        return [a for a in args if isinstance(a, tuple)]

    def export_spec(self, args):
        local = args[0]
        exported = args[1] if len(args) > 1 else local
        return (local, exported)

    def default_alias(self, args):
        return "default"

    def module_spec(self, args):
        return args[0]

    def NAME(self, t):
        return str(t)

    def STRING(self, t):
        return str(t)[1:-1]


def _is_relative(specifier):
    return specifier.startswith(("./", "../", "/"))


def classify_import(record, style_extensions=STYLE_EXTENSIONS, script_extensions=SCRIPT_EXTENSIONS):
    """Style if it names a stylesheet; script if it is a bare relative side-effect import."""
    specifier = record.specifier.split("?")[0]
    if specifier.endswith(tuple(style_extensions)):
        return "style"
    if record.bindings or not _is_relative(specifier):
        return "module"
    ext = os.path.splitext(specifier.rsplit("/", 1)[-1])[1]
    if not ext or ext in script_extensions:
        return "script"
    return "module"


def parse_source(code, style_extensions=STYLE_EXTENSIONS, script_extensions=SCRIPT_EXTENSIONS):
    """
    Summarize a module's default export and imports.

    Statements the grammar rejects are skipped; a module with no recognizable
    default export simply reports has_default_export=False.
    """
    parser = get_parser()
    reader = StatementReader()
    summary = SourceSummary()

    for line_number, text in scan_statements(code):
        try:
            node = reader.transform(parser.parse(text))
        except LarkError as e:
            debug_log(f"Skipping unparsed statement at line {line_number}: {text!r} ({type(e).__name__})")
            continue

        if isinstance(node, ImportRecord):
            node.kind = classify_import(node, style_extensions, script_extensions)
            summary.imports.append(node)
        elif isinstance(node, _Default):
            if summary.has_default_export or summary.exported_name is not None:
                continue
            if node.recognizable:
                summary.has_default_export = True
                summary.exported_name = node.name
            else:
                debug_log(f"Default export at line {line_number} is not a renderable component")
        elif isinstance(node, list) and not summary.has_default_export:
            for local, exported in node:
                if exported == "default":
                    summary.has_default_export = True
                    summary.exported_name = local
                    break

    return summary


# ==========================================
# ASSET IDENTIFIERS
# ==========================================

def format_asset_id(dependency_path, root, namespace="jsx-to-html", separator="-",
                    style_extensions=STYLE_EXTENSIONS):
    """
    Mint the stable asset id for a dependency file.

    The path is made relative to the source root, stylesheet extensions
    collapse to `.css` (what the bundler emits), extensionless paths become
    `.js`, and separators are flattened.
    """
    relative = os.path.relpath(os.path.abspath(dependency_path), os.path.abspath(root))
    stem, ext = os.path.splitext(relative)
    if ext in style_extensions:
        ext = ".css"
    elif not ext:
        ext = ".js"
    formatted = (stem + ext).replace(os.sep, separator).replace("/", separator)
    return f"{namespace}{separator}{formatted}"


def resolve_specifier(specifier, importer, root):
    """Absolute path a relative specifier points at; '/x' is root-relative."""
    specifier = specifier.split("?")[0]
    if specifier.startswith("/"):
        path = os.path.join(root, specifier.lstrip("/"))
    else:
        path = os.path.join(os.path.dirname(importer), specifier)
    return os.path.normpath(os.path.abspath(path))


def _module_path(module_id):
    return module_id.split("?")[0]


# ==========================================
# TRANSFORMER
# ==========================================

class SourceTransformer:
    """
    Per-module transform hook.

    Keeps the declarations of every entry it rewrote, keyed by module id,
    for the correlator to read after bundling.
    """

    def __init__(self, config, entries=None):
        """
        Args:
            config: PluginConfig
            entries: Optional absolute paths of discovered entries. When given,
                only those files are rewritten.
        """
        self.config = config
        self.root = config.root_path
        self.entries = {os.path.abspath(str(e)) for e in entries} if entries is not None else None
        self.declarations = {}
        self._claimed = {}

    def _asset_id(self, path):
        return format_asset_id(path, self.root, self.config.namespace,
                               style_extensions=self.config.style_extensions)

    def _is_entry(self, path):
        if not self.config.is_entry(path):
            return False
        return self.entries is None or os.path.abspath(path) in self.entries

    def declare(self, code, module_id):
        """Build the entry's Declaration, or None when it has no renderable default export."""
        path = _module_path(module_id)
        summary = parse_source(code, self.config.style_extensions, self.config.script_extensions)
        if not summary.has_default_export:
            return summary, None

        sources = {}
        script_ids, style_ids = [], []
        for record in summary.imports:
            if record.kind == "module":
                continue
            dep_path = resolve_specifier(record.specifier, path, self.root)
            if record.kind == "script" and not os.path.splitext(dep_path)[1]:
                dep_path += ".js"
            asset_id = self._asset_id(dep_path)
            sources.setdefault(asset_id, dep_path)
            (script_ids if record.kind == "script" else style_ids).append(asset_id)

        logical_name = os.path.basename(path)[: -len(self.config.entry_extension)]
        declaration = Declaration(
            module_id=os.path.abspath(path),
            logical_name=logical_name,
            component=summary.exported_name,
            script_ids=script_ids,
            style_ids=style_ids,
            sources=sources,
        )
        return summary, declaration

    def _claim(self, declaration):
        key = declaration.logical_name.casefold()
        owner = self._claimed.get(key)
        if owner is not None and owner != declaration.module_id:
            raise DeclarationError(
                f"Entries '{os.path.basename(owner)}' and '{os.path.basename(declaration.module_id)}' "
                f"both produce '{declaration.logical_name}.html'",
                path=declaration.module_id,
                suggestion="Rename one of the entries; output names are compared case-insensitively",
            )
        self._claimed[key] = declaration.module_id

    def transform(self, code, module_id):
        """
        Transform one module visited by the bundler.

        Returns:
            TransformResult; `code` is unchanged unless the module is an entry
            with a renderable default export.

        Raises:
            DeclarationError: If two entries map to the same output name
        """
        path = _module_path(module_id)

        if self.config.is_style(path) or self.config.is_script(path):
            kind = "style" if self.config.is_style(path) else "script"
            asset = EmittedAsset(name=self._asset_id(path), source=code, kind=kind, module_id=os.path.abspath(path))
            debug_log(f"Emitting {kind} asset {asset.name}")
            return TransformResult(code=code, emitted=[asset])

        if not self._is_entry(path):
            return TransformResult(code=code)

        summary, declaration = self.declare(code, module_id)
        if declaration is None:
            debug_log(f"No renderable default export in {path}; leaving it untouched")
            return TransformResult(code=code, summary=summary)

        self._claim(declaration)
        self.declarations[declaration.module_id] = declaration

        footer = get_render_footer(declaration.component, declaration.script_ids, declaration.style_ids)
        debug_log(f"Rewrote {path}: component={declaration.component} "
                  f"scripts={len(declaration.script_ids)} styles={len(declaration.style_ids)}")
        return TransformResult(
            code=f"{code.rstrip()}\n\n{footer}",
            summary=summary,
            declaration=declaration,
        )

    def lookup(self, module_id):
        """
        Declaration for a module, re-reading it from disk if this process did
        not transform it (e.g. when the bundle was produced by another process).

        Raises:
            DeclarationError: If the entry collides with another entry's output name
        """
        if not module_id:
            return None
        path = os.path.abspath(_module_path(module_id))
        if path in self.declarations:
            return self.declarations[path]
        if not self._is_entry(path) or not os.path.isfile(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            code = f.read()
        _, declaration = self.declare(code, path)
        if declaration is not None:
            self._claim(declaration)
            self.declarations[path] = declaration
        return declaration
