"""
Unit tests for dependency correlation.
"""
import pytest

from jsxhtml.artifacts import ArtifactStore, Asset, Chunk
from jsxhtml.classifier import classify_bundle
from jsxhtml.correlator import correlate, required_chunks
from jsxhtml.transformer import Declaration


ENTRY_MODULE = "/src/page.jsx"


def _classify(artifacts, **declared):
    store = ArtifactStore(artifacts)
    declaration = Declaration(module_id=ENTRY_MODULE, logical_name="page", component="Page", **declared)
    classified = classify_bundle(store, lambda m: declaration if m == ENTRY_MODULE else None)
    return store, classified


def _entry_chunk(**kwargs):
    return Chunk(file_name="page.js", code="x", is_entry=True, facade_module_id=ENTRY_MODULE,
                 module_ids=[ENTRY_MODULE], **kwargs)


class TestCorrelate:
    """Tests for correlate()."""

    def test_identifier_match(self):
        store, classified = _classify(
            [_entry_chunk(), Asset(file_name="jsx-to-html-a.css", source="a{}")],
            style_ids=["jsx-to-html-a.css"],
        )

        manifest = correlate(classified.entries[0], store, classified)

        assert manifest.entry == "page.js"
        assert manifest.style_ids == ["jsx-to-html-a.css"]
        assert manifest.dropped == []

    def test_declared_order_is_kept(self):
        store, classified = _classify(
            [
                _entry_chunk(),
                Asset(file_name="jsx-to-html-a.css", source="a{}"),
                Asset(file_name="jsx-to-html-b.css", source="b{}"),
            ],
            style_ids=["jsx-to-html-b.css", "jsx-to-html-a.css"],
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.style_ids == ["jsx-to-html-b.css", "jsx-to-html-a.css"]

    def test_duplicates_collapse_on_first_occurrence(self):
        store, classified = _classify(
            [
                _entry_chunk(),
                Asset(file_name="jsx-to-html-a.css", source="a{}"),
                Asset(file_name="jsx-to-html-b.css", source="b{}"),
            ],
            style_ids=["jsx-to-html-a.css", "jsx-to-html-b.css", "jsx-to-html-a.css"],
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.style_ids == ["jsx-to-html-a.css", "jsx-to-html-b.css"]

    def test_missing_dependency_is_dropped_with_warning(self, capsys):
        store, classified = _classify(
            [_entry_chunk()],
            script_ids=["jsx-to-html-gone.js"],
        )

        manifest = correlate(classified.entries[0], store, classified)

        assert manifest.script_ids == []
        assert manifest.dropped == ["jsx-to-html-gone.js"]
        assert "jsx-to-html-gone.js" in capsys.readouterr().err

    def test_every_manifest_id_is_live(self):
        store, classified = _classify(
            [_entry_chunk(), Asset(file_name="jsx-to-html-a.js", source="export default function () {}")],
            script_ids=["jsx-to-html-a.js", "jsx-to-html-missing.js"],
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert all(file_name in store for file_name in manifest.all_ids)

    def test_kind_mismatch_is_not_an_identifier_match(self):
        store, classified = _classify(
            [_entry_chunk(), Asset(file_name="jsx-to-html-a.css", source="a{}")],
            script_ids=["jsx-to-html-a.css"],
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.script_ids == []
        assert manifest.dropped == ["jsx-to-html-a.css"]

    def test_membership_fallback_by_source_path(self):
        store, classified = _classify(
            [
                _entry_chunk(),
                Asset(file_name="theme-1a2b.css", source="t{}", origin_modules=["/src/theme.css"]),
            ],
            style_ids=["jsx-to-html-theme.css"],
            sources={"jsx-to-html-theme.css": "/src/theme.css"},
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.style_ids == ["theme-1a2b.css"]
        assert manifest.dropped == []

    def test_membership_fallback_by_entry_modules(self):
        store, classified = _classify(
            [
                _entry_chunk(),
                Asset(file_name="page.css", source="p{}", origin_modules=[ENTRY_MODULE]),
            ],
            style_ids=["jsx-to-html-unknown.css"],
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.style_ids == ["page.css"]

    def test_identifier_match_wins_over_membership(self):
        store, classified = _classify(
            [
                _entry_chunk(),
                Asset(file_name="jsx-to-html-theme.css", source="t{}", origin_modules=["/src/theme.css"]),
                Asset(file_name="theme-copy.css", source="t{}", origin_modules=["/src/theme.css"]),
            ],
            style_ids=["jsx-to-html-theme.css"],
            sources={"jsx-to-html-theme.css": "/src/theme.css"},
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.style_ids == ["jsx-to-html-theme.css"]

    def test_fallback_never_selects_twice(self):
        store, classified = _classify(
            [
                _entry_chunk(),
                Asset(file_name="jsx-to-html-theme.css", source="t{}", origin_modules=["/src/theme.css"]),
            ],
            style_ids=["jsx-to-html-theme.css", "jsx-to-html-alias.css"],
            sources={"jsx-to-html-alias.css": "/src/theme.css"},
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.style_ids == ["jsx-to-html-theme.css"]
        assert manifest.dropped == []

    def test_dead_chunks_are_not_usable(self):
        store, classified = _classify(
            [_entry_chunk(), Chunk(file_name="jsx-to-html-effect.js", code="")],
            script_ids=["jsx-to-html-effect.js"],
        )

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.script_ids == []
        assert manifest.dropped == ["jsx-to-html-effect.js"]

    def test_entry_chunks_are_not_dependencies(self):
        other = Declaration(module_id="/src/other.jsx", logical_name="other", component="Other")
        declarations = {
            ENTRY_MODULE: Declaration(module_id=ENTRY_MODULE, logical_name="page", component="Page",
                                      script_ids=["other.js"]),
            "/src/other.jsx": other,
        }
        store = ArtifactStore([
            _entry_chunk(),
            Chunk(file_name="other.js", code="x", is_entry=True, facade_module_id="/src/other.jsx"),
        ])
        classified = classify_bundle(store, declarations.get)

        manifest = correlate(classified.entries[0], store, classified)
        assert manifest.dropped == ["other.js"]


class TestRequiredChunks:
    """Tests for required_chunks()."""

    @pytest.fixture
    def store(self):
        return ArtifactStore([
            Chunk(file_name="page.js", code="x", imports=["a.js", "blank.js"]),
            Chunk(file_name="a.js", code="x", imports=["b.js", "a.js"]),
            Chunk(file_name="b.js", code="x"),
            Chunk(file_name="blank.js", code=""),
        ])

    def test_transitive_imports(self, store):
        assert required_chunks(store["page.js"], store, dead=["blank.js"]) == ["a.js", "b.js"]

    def test_no_imports(self, store):
        assert required_chunks(store["b.js"], store, dead=[]) == []
