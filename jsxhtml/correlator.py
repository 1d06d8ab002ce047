"""
Dependency correlation.

Resolves the asset ids an entry declared at transform time against the
artifacts that actually exist after bundling.

Tie-break policy: an exact file-name match always wins. Module membership is
consulted only for ids with no file-name match, and never selects an
artifact twice for the same entry.
"""
import os
from typing import List

from pydantic import BaseModel, Field

from jsxhtml.artifacts import Asset, Chunk, artifact_kind
from jsxhtml.reporting import debug_log, warn


class DependencyManifest(BaseModel):
    """Live artifact file names an entry needs, in declared order."""
    entry: str
    script_ids: List[str] = Field(default_factory=list)
    style_ids: List[str] = Field(default_factory=list)
    dropped: List[str] = Field(default_factory=list)

    @property
    def all_ids(self):
        return self.script_ids + self.style_ids


def _norm(path):
    return os.path.normcase(os.path.abspath(path.split("?")[0]))


def _by_identifier(asset_id, kind, store, usable):
    artifact = store.get(asset_id)
    if artifact is None or asset_id not in usable:
        return None
    if artifact_kind(artifact) != kind:
        debug_log(f"{asset_id} exists but is a {artifact_kind(artifact)}, not a {kind}")
        return None
    return asset_id


def _by_membership(kind, source_path, chunk, store, usable):
    """Assets of `kind` that originate from the dependency module (or, if unknown, from the entry's modules)."""
    if source_path is not None:
        wanted = {_norm(source_path)}
    else:
        wanted = {_norm(m) for m in chunk.module_ids}

    matches = []
    for file_name in usable:
        artifact = store.get(file_name)
        if not isinstance(artifact, Asset) or artifact.kind != kind:
            continue
        if wanted & {_norm(m) for m in artifact.origin_modules}:
            matches.append(file_name)
    return matches


def correlate(entry, store, classified):
    """
    Build the DependencyManifest for one entry chunk.

    Args:
        entry: EntryChunk from the classifier
        store: ArtifactStore (read only)
        classified: ClassifiedBundle; only its dependency candidates are usable

    Returns:
        DependencyManifest whose ids all name live artifacts
    """
    declaration = entry.declaration
    usable = [f for f in classified.dependencies if f in store]
    manifest = DependencyManifest(entry=entry.file_name)

    for kind, declared, selected in (
        ("script", declaration.script_ids, manifest.script_ids),
        ("style", declaration.style_ids, manifest.style_ids),
    ):
        seen = set()
        for asset_id in declared:
            if asset_id in seen:
                continue
            seen.add(asset_id)

            match = _by_identifier(asset_id, kind, store, usable)
            if match is not None:
                if match not in selected:
                    selected.append(match)
                continue

            found = _by_membership(kind, declaration.sources.get(asset_id), entry.chunk, store, usable)
            if found:
                fresh = [f for f in found if f not in selected]
                debug_log(f"{entry.file_name}: {asset_id} resolved by module membership to {found}")
                selected.extend(fresh)
                continue

            manifest.dropped.append(asset_id)
            warn(f"{entry.file_name}: declared {kind} dependency '{asset_id}' is not in the bundle "
                 f"(eliminated upstream?); skipping it")

    return manifest


def required_chunks(chunk, store, dead):
    """
    Chunks `chunk` imports, transitively, that must be materialized for it to run.

    Blank chunks are skipped; their import statements are stripped instead.
    """
    ordered = []
    pending = list(chunk.imports)
    while pending:
        file_name = pending.pop(0)
        if file_name in ordered or file_name in dead:
            continue
        artifact = store.get(file_name)
        if not isinstance(artifact, Chunk):
            continue
        ordered.append(file_name)
        pending.extend(artifact.imports)
    return ordered
