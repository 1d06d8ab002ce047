import os

from jsxhtml.artifacts import Asset
from jsxhtml.assembler import assemble_document
from jsxhtml.classifier import classify_bundle
from jsxhtml.config import PluginConfig
from jsxhtml.correlator import correlate, required_chunks
from jsxhtml.discovery import build_input_map, discover_entries
from jsxhtml.errors import ScratchIOError
from jsxhtml.pruner import prune_bundle
from jsxhtml.reporting import debug_log, log
from jsxhtml.sandbox import IsolatedRenderer, NodeExecutor, ScratchSpace
from jsxhtml.transformer import SourceTransformer

PLUGIN_NAME = "vite-plugin-jsx-to-html"


# ==========================================
# POST-BUNDLE PIPELINE
# ==========================================
async def render_bundle(store, config, lookup, executor):
    """
    Turn the bundler's output into HTML documents, in place.

    Classify -> correlate -> render -> assemble per entry, in the store's
    order, then prune. Documents are only emitted once every entry has
    rendered, so a failing entry leaves no partial output behind.

    Args:
        store: ArtifactStore produced by the bundler
        config: PluginConfig
        lookup: Callable module_id -> Declaration or None
        executor: IsolatedExecutor used to run compiled entries

    Returns:
        The emitted OutputDocuments
    """
    classified = classify_bundle(store, lookup)
    debug_log(f"Classified bundle: {len(classified.entries)} entries, "
              f"{len(classified.dependencies)} dependencies, {len(classified.dead)} dead")

    scratch = ScratchSpace.create(config.cache_path)
    renderer = IsolatedRenderer(config, store, executor, scratch, dead=classified.dead)
    consumed = set()
    documents = []

    try:
        for entry in classified.entries:
            manifest = correlate(entry, store, classified)
            result = await renderer.render(entry, manifest)

            consumed.add(entry.file_name)
            consumed.update(required_chunks(entry.chunk, store, classified.dead))
            if result is None:
                continue
            consumed.update(result.consumed_script_ids)
            consumed.update(result.consumed_style_ids)

            document = assemble_document(entry.logical_name, result, manifest, store, indent=config.indent)
            documents.append(document)
            log(f"  {entry.file_name} -> {document.file_name}")
    finally:
        if config.keep_scratch:
            log(f"Keeping scratch directory {scratch.path}")
        else:
            scratch.cleanup()

    for document in documents:
        store.emit(document)

    report = prune_bundle(store, consumed)
    debug_log(f"Pruned {len(report.deleted)} artifacts ({len(report.orphaned)} unreferenced)")
    return documents


def write_documents(documents, out_dir):
    """Write OutputDocuments to `out_dir` (used when running outside the bundler)."""
    try:
        os.makedirs(out_dir, exist_ok=True)
        for document in documents:
            path = os.path.join(out_dir, document.file_name)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(document.content)
    except OSError as e:
        raise ScratchIOError(f"Cannot write output document: {e.strerror}", path=out_dir)


# ==========================================
# BUNDLER HOOKS
# ==========================================
class JsxToHtmlPlugin:
    """
    Host bundler integration.

    The host calls, in order: amend_config() while configuring, config_resolved()
    once settings are final, transform() for every module it visits, and
    generate_bundle() with its output set.
    """
    name = PLUGIN_NAME

    def __init__(self, config=None, executor=None):
        self.config = config or PluginConfig()
        self.executor = executor or NodeExecutor(self.config.node)
        self.entries = []
        self.transformer = None
        self.emitted = []

    def amend_config(self, user_config=None):
        """
        Discover entries and return the config the bundler must merge in.

        Raises:
            ConfigurationError: If the source root is missing or unreadable
        """
        user_config = user_config or {}
        if user_config.get("root"):
            self.config = self.config.model_copy(update={"root": user_config["root"]})

        self.entries = discover_entries(self.config.root_path, self.config.entry_extension)
        self.transformer = SourceTransformer(self.config, entries=[e.source_path for e in self.entries])
        log(f"Found {len(self.entries)} component entr{'y' if len(self.entries) == 1 else 'ies'} "
            f"in {self.config.root_path}")

        return {
            "build": {
                "outDir": self.config.out_dir,
                "emptyOutDir": True,
                "assetsDir": "",
                "ssr": True,
                "ssrEmitAssets": True,
                "rollupOptions": {
                    "external": [self.config.create_element_module, self.config.render_module],
                    "preserveEntrySignatures": "allow-extension",
                    "input": build_input_map(self.entries),
                    "output": {
                        "entryFileNames": "[name].js",
                        "assetFileNames": "[name].[ext]",
                    },
                    "treeshake": True,
                },
            },
        }

    def config_resolved(self, resolved):
        """Pick up the bundler's resolved cache directory for the scratch space."""
        cache_dir = resolved.get("cacheDir")
        if cache_dir and not self.config.cache_dir:
            self.config = self.config.model_copy(update={"cache_dir": cache_dir})
            if self.transformer is not None:
                self.transformer.config = self.config

    def transform(self, code, module_id):
        """
        Per-module transform hook.

        Raises:
            DeclarationError: If two entries map to the same output name
        """
        if self.transformer is None:
            self.transformer = SourceTransformer(self.config)
        result = self.transformer.transform(code, module_id)
        self.emitted.extend(result.emitted)
        return result

    def emitted_artifacts(self):
        """Assets the transform hook asked the bundler to emit."""
        return [
            Asset(file_name=asset.name, source=asset.source, name=asset.name, origin_modules=[asset.module_id])
            for asset in self.emitted
        ]

    async def generate_bundle(self, store):
        """
        Post-bundle hook: render every entry into `store` and prune it.

        Raises:
            ExecutionError: If any entry or script dependency fails to execute
            ScratchIOError: If the scratch space cannot be written
        """
        if self.transformer is None:
            self.transformer = SourceTransformer(self.config)
        for asset in self.emitted_artifacts():
            if asset.file_name not in store:
                store.add(asset)
        return await render_bundle(store, self.config, self.transformer.lookup, self.executor)
