"""
Unit tests for jsxhtml/transformer.py - source parsing and entry rewriting.
"""
import os
import tempfile

import pytest

from jsxhtml.config import PluginConfig
from jsxhtml.errors import DeclarationError
from jsxhtml.transformer import (
    SourceTransformer,
    format_asset_id,
    parse_source,
    scan_statements,
)


PAGE = '''import React from 'react';
import './styles.css';
import './effect.js';

export default function Page() {
  return <main><h1>Hello</h1></main>;
}
'''


class TestScanStatements:
    """Tests for the lexical statement scanner."""

    def test_multiline_import_is_joined(self):
        code = "import {\n  a,\n  b,\n} from './lib.js';\nconst x = 1;\n"
        statements = list(scan_statements(code))
        assert statements == [(1, "import { a, b, } from './lib.js';")]

    def test_block_comments_are_skipped(self):
        code = "/*\nimport './hidden.css';\n*/\nimport './shown.css';\n"
        statements = list(scan_statements(code))
        assert statements == [(4, "import './shown.css';")]

    def test_default_head_is_cut_at_paren(self):
        code = "export default function Page({ title }) {\n  return title;\n}\n"
        assert list(scan_statements(code)) == [(1, "export default function Page(")]

    def test_unterminated_import_does_not_swallow_lines(self):
        code = "import {\nexport default function Page() {}\n"
        texts = [text for _, text in scan_statements(code)]
        assert "export default function Page(" in texts

    def test_dynamic_import_is_not_a_statement(self):
        assert list(scan_statements("import('./lazy.js');\n")) == []


class TestParseSource:
    """Tests for the typed source summary."""

    def test_default_function_export(self):
        summary = parse_source(PAGE)
        assert summary.has_default_export is True
        assert summary.exported_name == "Page"

    def test_import_classification(self):
        summary = parse_source(PAGE)
        assert summary.style_imports == ["./styles.css"]
        assert summary.script_imports == ["./effect.js"]
        kinds = {i.specifier: i.kind for i in summary.imports}
        assert kinds["react"] == "module"

    def test_order_and_duplicates_are_preserved(self):
        code = (
            "import './b.css';\n"
            "import './a.css';\n"
            "import './b.css';\n"
            "export default function P() {}\n"
        )
        assert parse_source(code).style_imports == ["./b.css", "./a.css", "./b.css"]

    def test_extensionless_relative_import_is_script(self):
        code = "import './polyfill';\nexport default function P() {}\n"
        assert parse_source(code).script_imports == ["./polyfill"]

    def test_imports_with_bindings_are_not_scripts(self):
        code = "import helper from './helper.js';\nexport default function P() {}\n"
        summary = parse_source(code)
        assert summary.script_imports == []

    def test_component_imports_are_modules(self):
        code = "import './Header.jsx';\nexport default function P() {}\n"
        assert parse_source(code).script_imports == []

    def test_bare_package_side_effect_is_not_script(self):
        code = "import 'normalize';\nexport default function P() {}\n"
        assert parse_source(code).script_imports == []

    def test_preprocessor_stylesheets_are_styles(self):
        code = "import './a.scss';\nimport './b.less';\nexport default function P() {}\n"
        assert parse_source(code).style_imports == ["./a.scss", "./b.less"]

    def test_no_default_export(self):
        summary = parse_source("export function helper() {}\n")
        assert summary.has_default_export is False
        assert summary.exported_name is None

    def test_identifier_default_export(self):
        code = "function Page() {}\nexport default Page;\n"
        assert parse_source(code).exported_name == "Page"

    def test_export_list_default_alias(self):
        code = "function Page() {}\nexport { Page as default };\n"
        assert parse_source(code).exported_name == "Page"

    def test_class_default_export(self):
        code = "export default class Page extends React.Component {\n  render() {}\n}\n"
        assert parse_source(code).exported_name == "Page"

    def test_anonymous_default_is_not_recognizable(self):
        summary = parse_source("export default function () {}\n")
        assert summary.has_default_export is False

    def test_async_default_is_not_recognizable(self):
        summary = parse_source("export default async function Page() {}\n")
        assert summary.has_default_export is False

    def test_wrapped_default_is_not_recognizable(self):
        summary = parse_source("export default memo(Page);\n")
        assert summary.has_default_export is False


class TestFormatAssetId:
    """Tests for asset id minting."""

    def test_file_at_root(self):
        assert format_asset_id("/src/styles.css", "/src") == "jsx-to-html-styles.css"

    def test_nested_path_is_flattened(self):
        assert format_asset_id("/src/lib/ui/theme.css", "/src") == "jsx-to-html-lib-ui-theme.css"

    def test_preprocessor_extension_becomes_css(self):
        assert format_asset_id("/src/theme.scss", "/src") == "jsx-to-html-theme.css"

    def test_extensionless_becomes_js(self):
        assert format_asset_id("/src/polyfill", "/src") == "jsx-to-html-polyfill.js"

    def test_custom_namespace(self):
        assert format_asset_id("/src/a.js", "/src", namespace="site") == "site-a.js"

    def test_deterministic(self):
        assert format_asset_id("/src/x/y.js", "/src") == format_asset_id("/src/x/y.js", "/src")


class TestSourceTransformer:
    """Tests for the per-module transform hook."""

    @pytest.fixture
    def root(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield os.path.realpath(tmpdir)

    @pytest.fixture
    def transformer(self, root):
        return SourceTransformer(PluginConfig(root=root))

    def test_entry_gets_footer(self, transformer, root):
        result = transformer.transform(PAGE, os.path.join(root, "page.jsx"))

        assert result.code.startswith(PAGE.rstrip())
        assert "__jsxToHtmlCreateElement(Page)" in result.code
        assert "as renderedMarkup" in result.code
        assert 'const __jsxToHtmlScripts = ["jsx-to-html-effect.js"];' in result.code
        assert 'const __jsxToHtmlStyles = ["jsx-to-html-styles.css"];' in result.code

    def test_render_call_is_not_evaluated_at_transform_time(self, transformer, root):
        """The footer is plain text; nothing imports the rendering library here."""
        result = transformer.transform(PAGE, os.path.join(root, "page.jsx"))
        assert "import { renderToStaticMarkup" not in result.code

    def test_declaration_is_recorded(self, transformer, root):
        path = os.path.join(root, "page.jsx")
        result = transformer.transform(PAGE, path)

        declaration = transformer.declarations[path]
        assert declaration is result.declaration
        assert declaration.logical_name == "page"
        assert declaration.component == "Page"
        assert declaration.sources["jsx-to-html-styles.css"] == os.path.join(root, "styles.css")

    def test_entry_without_default_export_is_untouched(self, transformer, root):
        code = "export const x = 1;\n"
        result = transformer.transform(code, os.path.join(root, "empty.jsx"))
        assert result.code == code
        assert result.declaration is None

    def test_non_entry_module_passes_through(self, transformer, root):
        code = "export default function helper() {}\n"
        result = transformer.transform(code, os.path.join(root, "helper.ts"))
        assert result.code == code
        assert result.emitted == []

    def test_stylesheet_is_emitted_as_asset(self, transformer, root):
        result = transformer.transform("body { margin: 0 }", os.path.join(root, "styles.css"))
        assert result.code == "body { margin: 0 }"
        assert len(result.emitted) == 1
        assert result.emitted[0].name == "jsx-to-html-styles.css"
        assert result.emitted[0].kind == "style"

    def test_script_is_emitted_as_asset(self, transformer, root):
        result = transformer.transform("export default function e() {}", os.path.join(root, "lib", "e.js"))
        assert result.emitted[0].name == "jsx-to-html-lib-e.js"
        assert result.emitted[0].kind == "script"

    def test_nested_entry_ids_are_root_relative(self, transformer, root):
        code = "import '../shared/theme.css';\nexport default function P() {}\n"
        result = transformer.transform(code, os.path.join(root, "pages", "p.jsx"))
        assert result.declaration.style_ids == ["jsx-to-html-shared-theme.css"]

    def test_case_colliding_entries_are_rejected(self, transformer, root):
        transformer.transform(PAGE, os.path.join(root, "page.jsx"))
        with pytest.raises(DeclarationError) as exc_info:
            transformer.transform(PAGE, os.path.join(root, "Page.jsx"))
        assert "page.html" in str(exc_info.value).lower()

    def test_same_entry_can_be_transformed_twice(self, transformer, root):
        path = os.path.join(root, "page.jsx")
        first = transformer.transform(PAGE, path)
        second = transformer.transform(PAGE, path)
        assert first.code == second.code

    def test_only_discovered_entries_are_rewritten(self, root):
        entry = os.path.join(root, "page.jsx")
        transformer = SourceTransformer(PluginConfig(root=root), entries=[entry])

        result = transformer.transform(PAGE, os.path.join(root, "components", "Card.jsx"))
        assert result.declaration is None

    def test_lookup_reads_untransformed_entry_from_disk(self, transformer, root):
        path = os.path.join(root, "page.jsx")
        with open(path, "w") as f:
            f.write(PAGE)

        declaration = transformer.lookup(path)
        assert declaration is not None
        assert declaration.component == "Page"

    def test_lookup_of_unknown_module(self, transformer, root):
        assert transformer.lookup(os.path.join(root, "missing.jsx")) is None
        assert transformer.lookup(None) is None

    def test_lookup_rejects_case_colliding_entries(self, transformer, root):
        for name in ("Page.jsx", "page.jsx"):
            with open(os.path.join(root, name), "w") as f:
                f.write(PAGE)

        transformer.lookup(os.path.join(root, "Page.jsx"))
        with pytest.raises(DeclarationError):
            transformer.lookup(os.path.join(root, "page.jsx"))
