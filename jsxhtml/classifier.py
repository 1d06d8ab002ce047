"""
Artifact classification after bundling.

Splits the bundle into renderable entry chunks, dependency candidates and
dead (blank) chunks. Nothing is deleted here; the pruner removes dead chunks
together with everything else once all entries are rendered.
"""
import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from jsxhtml.artifacts import Asset, Chunk
from jsxhtml.reporting import debug_log
from jsxhtml.transformer import Declaration


class EntryChunk(BaseModel):
    """A renderable entry chunk paired with its transform-time declaration."""
    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    declaration: Declaration

    @property
    def file_name(self):
        return self.chunk.file_name

    @property
    def logical_name(self):
        return self.chunk.logical_name


class ClassifiedBundle(BaseModel):
    entries: List[EntryChunk] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    dead: List[str] = Field(default_factory=list)
    declined: List[str] = Field(default_factory=list)


def classify_bundle(store, lookup):
    """
    Classify every artifact in the store.

    Args:
        store: ArtifactStore (read only here)
        lookup: Callable module_id -> Declaration or None

    Returns:
        ClassifiedBundle in the store's enumeration order
    """
    result = ClassifiedBundle()

    for file_name, artifact in store.items():
        if isinstance(artifact, Chunk):
            if artifact.is_blank:
                # Entry or not, there is nothing left to execute
                result.dead.append(file_name)
                if artifact.is_entry:
                    result.declined.append(file_name)
                    debug_log(f"Entry {file_name} compiled to nothing; no HTML for it")
                continue

            if artifact.is_entry:
                declaration = _declaration_for(artifact, lookup)
                if declaration is not None:
                    result.entries.append(EntryChunk(chunk=artifact, declaration=declaration))
                    continue
                debug_log(f"Entry {file_name} has no renderable default export")

            result.dependencies.append(file_name)
        elif isinstance(artifact, Asset):
            result.dependencies.append(file_name)

    return result


def _declaration_for(chunk, lookup):
    if chunk.facade_module_id:
        return lookup(chunk.facade_module_id)
    # No facade recorded: the entry module is the one carrying a declaration
    for module_id in chunk.module_ids:
        declaration = lookup(module_id)
        if declaration is not None:
            return declaration
    return None


def strip_dead_imports(code, dead):
    """Drop bare `import './dead.js';` statements that point at blank chunks."""
    for file_name in dead:
        pattern = re.compile(
            r'^[ \t]*import\s*([\'"])(?:\./)?' + re.escape(file_name) + r'\1\s*;?[ \t]*\n?',
            re.MULTILINE,
        )
        code = pattern.sub("", code)
    return code
