"""
HTML assembly.

Markup first, then one <style> block, then one <script> block that invokes
each script dependency's default export once. The result is run through a
deterministic formatter so identical inputs give byte-identical documents.
"""
import re
from html.parser import HTMLParser

from jsxhtml.artifacts import OutputDocument

BLOCK_TAGS = {
    "html", "head", "body", "title", "meta", "link", "base",
    "div", "p", "section", "article", "header", "footer", "nav", "main", "aside",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "blockquote", "figure", "figcaption",
    "ul", "ol", "li", "dl", "dt", "dd", "table", "caption", "colgroup", "col",
    "thead", "tbody", "tfoot", "tr", "td", "th", "form", "fieldset", "legend",
    "details", "summary", "dialog", "template", "noscript", "address", "svg",
}
VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta",
    "source", "track", "wbr",
}
RAW_TAGS = {"script", "style"}
PRESERVE_TAGS = {"pre", "textarea"}

_WS_RE = re.compile(r'\s+')


class HtmlFormatter(HTMLParser):
    """
    Pretty-prints HTML: block elements on their own lines, inline content
    kept on one line with whitespace collapsed, script/style and
    pre/textarea bodies left untouched.
    """

    def __init__(self, indent=2):
        super().__init__(convert_charrefs=False)
        self.indent = " " * indent
        self.lines = []
        self.depth = 0
        self.inline = []
        self.raw_tag = None
        self.raw = []
        self.preserve = []
        self.preserve_depth = 0

    # --- output helpers ---

    def _emit(self, text, depth=None):
        depth = self.depth if depth is None else depth
        self.lines.append(f"{self.indent * depth}{text}".rstrip())

    def _flush(self):
        text = _WS_RE.sub(" ", "".join(self.inline)).strip()
        self.inline = []
        if text:
            self._emit(text)

    def _inline(self, text):
        if self.preserve_depth:
            self.preserve.append(text)
        else:
            self.inline.append(text)

    # --- parser callbacks ---

    def handle_decl(self, decl):
        self._flush()
        self._emit(f"<!{decl}>")

    def handle_starttag(self, tag, attrs):
        raw = self.get_starttag_text()
        if self.preserve_depth:
            self.preserve.append(raw)
            if tag in PRESERVE_TAGS:
                self.preserve_depth += 1
            return

        if tag in PRESERVE_TAGS:
            self._flush()
            self.preserve = [raw]
            self.preserve_depth = 1
        elif tag in RAW_TAGS:
            self._flush()
            self._emit(raw)
            self.raw_tag = tag
            self.raw = []
        elif tag in BLOCK_TAGS:
            self._flush()
            self._emit(raw)
            if tag not in VOID_TAGS:
                self.depth += 1
        else:
            self._inline(raw)

    def handle_startendtag(self, tag, attrs):
        raw = self.get_starttag_text()
        if tag in BLOCK_TAGS and not self.preserve_depth:
            self._flush()
            self._emit(raw)
        else:
            self._inline(raw)

    def handle_endtag(self, tag):
        if self.preserve_depth:
            self.preserve.append(f"</{tag}>")
            if tag in PRESERVE_TAGS:
                self.preserve_depth -= 1
                if not self.preserve_depth:
                    self._emit("".join(self.preserve))
                    self.preserve = []
            return

        if tag in RAW_TAGS:
            body = "".join(self.raw)
            body = body[1:] if body.startswith("\n") else body
            body = body[:-1] if body.endswith("\n") else body
            if body.strip():
                # Script and style bodies are source text; kept byte for byte
                self.lines.append(body)
            self._emit(f"</{tag}>")
            self.raw_tag = None
            self.raw = []
        elif tag in BLOCK_TAGS:
            self._flush()
            self.depth = max(self.depth - 1, 0)
            self._emit(f"</{tag}>")
        else:
            self._inline(f"</{tag}>")

    def handle_data(self, data):
        if self.raw_tag and not self.preserve_depth:
            self.raw.append(data)
            return
        self._inline(data)

    def handle_entityref(self, name):
        self._inline(f"&{name};")

    def handle_charref(self, name):
        self._inline(f"&#{name};")

    def handle_comment(self, data):
        self._inline(f"<!--{data}-->")

    def format(self, markup):
        self.feed(markup.replace("\r\n", "\n").replace("\r", "\n"))
        self.close()
        if self.raw:
            self.lines.append("".join(self.raw))
        if self.preserve:
            self._emit("".join(self.preserve))
        self._flush()
        return "\n".join(self.lines) + "\n"


def format_html(markup, indent=2):
    """Deterministically format an HTML string."""
    return HtmlFormatter(indent=indent).format(markup)


def _guard(body, tag):
    """Keep an inlined body from closing its own element early."""
    return re.sub(rf'</({tag})', r'<\\/\1', body, flags=re.IGNORECASE)


def assemble_document(logical_name, result, manifest, store, indent=2):
    """
    Build the OutputDocument for one rendered entry.

    Args:
        logical_name: Entry name; the document is `<logical_name>.html`
        result: RenderResult from the isolated renderer
        manifest: DependencyManifest giving the inlining order
        store: ArtifactStore holding the style bodies
    """
    parts = [result.markup]

    styles = [
        _guard(store[file_name].body.strip(), "style")
        for file_name in manifest.style_ids
        if file_name in result.consumed_style_ids
    ]
    if styles:
        parts.append("<style>\n" + "\n".join(styles) + "\n</style>")

    scripts = [
        f"({_guard(result.script_sources[file_name].strip(), 'script')})();"
        for file_name in manifest.script_ids
        if file_name in result.consumed_script_ids
    ]
    if scripts:
        parts.append("<script>\n" + "\n".join(scripts) + "\n</script>")

    return OutputDocument.for_entry(logical_name, format_html("\n".join(parts), indent=indent))
