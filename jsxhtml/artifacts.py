"""
Bundle artifacts and the shared artifact store.

The store is the bundler's output set. Every stage reads it; OutputDocuments
are added with emit(); deletion goes only through the handle returned by
open_for_pruning(), which can be opened once, after the last entry is done.
"""
import json
import os
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from jsxhtml.config import SCRIPT_EXTENSIONS, STYLE_EXTENSIONS
from jsxhtml.errors import ConfigurationError, DeclarationError


class _Artifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_name: str = Field(validation_alias=AliasChoices("file_name", "fileName"))


class Chunk(_Artifact):
    """Compiled JS module produced by the bundler."""
    type: Literal["chunk"] = "chunk"
    code: str = ""
    is_entry: bool = Field(default=False, validation_alias=AliasChoices("is_entry", "isEntry"))
    name: Optional[str] = None
    facade_module_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("facade_module_id", "facadeModuleId"))
    module_ids: List[str] = Field(default_factory=list, validation_alias=AliasChoices("module_ids", "moduleIds"))
    imports: List[str] = Field(default_factory=list)

    @property
    def logical_name(self):
        if self.name:
            return self.name
        return os.path.splitext(os.path.basename(self.file_name))[0]

    @property
    def is_blank(self):
        return not self.code.strip()

    @property
    def body(self):
        return self.code


class Asset(_Artifact):
    """Non-chunk output file (stylesheets, emitted script sources, ...)."""
    type: Literal["asset"] = "asset"
    source: str = ""
    name: Optional[str] = None
    origin_modules: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("origin_modules", "originalFileNames", "originModules"))

    @property
    def kind(self):
        if self.file_name.endswith(STYLE_EXTENSIONS):
            return "style"
        if self.file_name.endswith(SCRIPT_EXTENSIONS):
            return "script"
        return "other"

    @property
    def body(self):
        return self.source


class OutputDocument(_Artifact):
    """Final HTML page; the only artifact kind that survives pruning."""
    type: Literal["document"] = "document"
    content: str

    @classmethod
    def for_entry(cls, logical_name, content):
        return cls(file_name=f"{logical_name}.html", content=content)


BundleArtifact = Annotated[Union[Chunk, Asset, OutputDocument], Field(discriminator="type")]

_bundle_adapter = TypeAdapter(Dict[str, BundleArtifact])


def artifact_kind(artifact):
    """'script' for chunks and script assets, the asset kind otherwise."""
    if isinstance(artifact, Chunk):
        return "script"
    if isinstance(artifact, Asset):
        return artifact.kind
    return "document"


class ArtifactStore:
    """Ordered, mutable mapping of file name to artifact."""

    def __init__(self, artifacts=None):
        self._artifacts = {}
        self._pruning_opened = False
        for artifact in artifacts or []:
            self._artifacts[artifact.file_name] = artifact

    def __contains__(self, file_name):
        return file_name in self._artifacts

    def __getitem__(self, file_name):
        return self._artifacts[file_name]

    def __iter__(self):
        return iter(list(self._artifacts))

    def __len__(self):
        return len(self._artifacts)

    def get(self, file_name, default=None):
        return self._artifacts.get(file_name, default)

    def items(self):
        return list(self._artifacts.items())

    def values(self):
        return list(self._artifacts.values())

    def chunks(self):
        return [a for a in self._artifacts.values() if isinstance(a, Chunk)]

    def assets(self):
        return [a for a in self._artifacts.values() if isinstance(a, Asset)]

    def documents(self):
        return [a for a in self._artifacts.values() if isinstance(a, OutputDocument)]

    def add(self, artifact):
        """Add a bundler artifact (used when loading and by the transform hook's emissions)."""
        if self._pruning_opened:
            raise RuntimeError("Cannot add artifacts after pruning started")
        self._artifacts[artifact.file_name] = artifact

    def emit(self, document):
        """Add an OutputDocument; refuses to shadow an existing artifact."""
        if not isinstance(document, OutputDocument):
            raise TypeError("Only OutputDocuments can be emitted")
        if document.file_name in self._artifacts:
            raise DeclarationError(
                f"Output '{document.file_name}' collides with an existing bundle artifact",
                path=document.file_name,
                suggestion="Rename the entry or the asset that produces this file name",
            )
        self._artifacts[document.file_name] = document

    def open_for_pruning(self):
        """Hand out the single deletion handle."""
        if self._pruning_opened:
            raise RuntimeError("Pruning handle already opened for this bundle")
        self._pruning_opened = True
        return _PruneHandle(self._artifacts)

    def to_dict(self):
        return {name: artifact.model_dump(mode="json") for name, artifact in self._artifacts.items()}


class _PruneHandle:
    def __init__(self, artifacts):
        self._artifacts = artifacts

    def delete(self, file_name):
        del self._artifacts[file_name]


def load_bundle(path):
    """
    Load a bundle dumped by the host bundler as JSON.

    Accepts Rollup's OutputBundle shape (`{fileName: {type, ...}}`) or a list
    of artifacts.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read bundle: {e}", path=path)

    if isinstance(data, list):
        data = {item.get("fileName") or item.get("file_name"): item for item in data}

    try:
        artifacts = _bundle_adapter.validate_python(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Malformed bundle: {e.errors()[0]['msg']}",
            path=path,
            context=".".join(str(loc) for loc in e.errors()[0]["loc"]),
        )

    store = ArtifactStore()
    for artifact in artifacts.values():
        store.add(artifact)
    return store
