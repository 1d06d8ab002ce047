"""
Bundle pruning.

Runs once, after every entry has been rendered and assembled, and leaves only
OutputDocuments in the artifact store.
"""
from typing import List

from pydantic import BaseModel, Field

from jsxhtml.artifacts import OutputDocument
from jsxhtml.reporting import debug_log


class PruneReport(BaseModel):
    deleted: List[str] = Field(default_factory=list)
    consumed: List[str] = Field(default_factory=list)
    orphaned: List[str] = Field(default_factory=list)
    retained: List[str] = Field(default_factory=list)


def prune_bundle(store, consumed):
    """
    Delete every intermediate artifact from the store.

    Args:
        store: ArtifactStore; its pruning handle is opened here
        consumed: File names used by some entry (entry chunks included)

    Returns:
        PruneReport separating consumed intermediates from orphans
    """
    handle = store.open_for_pruning()
    report = PruneReport()

    for file_name, artifact in store.items():
        if isinstance(artifact, OutputDocument):
            report.retained.append(file_name)
            continue
        handle.delete(file_name)
        report.deleted.append(file_name)
        if file_name in consumed:
            report.consumed.append(file_name)
        else:
            report.orphaned.append(file_name)
            debug_log(f"Pruned unreferenced artifact {file_name}")

    return report
