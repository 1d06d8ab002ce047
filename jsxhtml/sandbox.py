"""
Isolated rendering.

Compiled entries are never imported into this process. Each entry is written
into its own directory inside a per-build scratch space, marked as an ES
module package, and executed by a node subprocess that reports the exported
bindings back as JSON.
"""
import asyncio
import json
import os
import re
import shutil
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from jsxhtml.artifacts import Chunk
from jsxhtml.classifier import strip_dead_imports
from jsxhtml.correlator import required_chunks
from jsxhtml.errors import ConfigurationError, ExecutionError, ScratchIOError
from jsxhtml.reporting import debug_log, warn
from jsxhtml.runtime import (
    MARKUP_EXPORT,
    RUNNER_FILE,
    SCRIPTS_EXPORT,
    STYLES_EXPORT,
    get_render_header,
    get_runner,
)

PACKAGE_DESCRIPTOR = {"type": "module"}


class ModuleJob(BaseModel):
    """One module for the executor to import, and what to capture from it."""
    file_name: str
    capture: Literal["default_function", "exports"]
    names: List[str] = Field(default_factory=list)
    label: Optional[str] = None  # Shown in errors instead of the scratch file name


class RenderResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry: str
    markup: str
    consumed_script_ids: FrozenSet[str] = frozenset()
    consumed_style_ids: FrozenSet[str] = frozenset()
    # script artifact file name -> source text of its default export
    script_sources: Dict[str, str] = Field(default_factory=dict)


# ==========================================
# SCRATCH SPACE
# ==========================================

class ModuleContext:
    """A private module namespace: one directory with a package descriptor."""

    def __init__(self, directory):
        self.directory = directory

    def path_for(self, file_name):
        path = os.path.normpath(os.path.join(self.directory, file_name))
        if not path.startswith(self.directory + os.sep):
            raise ScratchIOError(f"Artifact name escapes the scratch directory: {file_name}")
        return path

    def _write(self, file_name, content):
        path = self.path_for(file_name)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise ScratchIOError(f"Cannot write scratch file: {e.strerror}", path=path)
        return path

    async def write(self, file_name, content):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._write, file_name, content)

    async def read_json(self, file_name):
        loop = asyncio.get_running_loop()

        def _read():
            with open(self.path_for(file_name), 'r', encoding='utf-8') as f:
                return json.load(f)

        return await loop.run_in_executor(None, _read)


class ScratchSpace:
    """Per-build scratch directory; never shared between builds."""

    def __init__(self, path):
        self.path = path
        self._contexts = 0

    @classmethod
    def create(cls, cache_dir):
        """
        Create a fresh, uniquely named scratch directory under `cache_dir`.

        Raises:
            ScratchIOError: If the directory cannot be created
        """
        try:
            os.makedirs(cache_dir, exist_ok=True)
            path = tempfile.mkdtemp(prefix="jsx-to-html-", dir=cache_dir)
        except OSError as e:
            raise ScratchIOError(f"Cannot create scratch directory: {e.strerror}", path=cache_dir)
        debug_log(f"Scratch directory: {path}")
        return cls(os.path.realpath(path))

    async def context_for(self, logical_name):
        """A new module namespace for one entry, with the package descriptor and runner in place."""
        self._contexts += 1
        safe = re.sub(r'[^\w.-]', '_', logical_name)
        directory = os.path.join(self.path, f"{self._contexts:03d}-{safe}")
        context = ModuleContext(directory)
        await context.write("package.json", json.dumps(PACKAGE_DESCRIPTOR))
        await context.write(RUNNER_FILE, get_runner())
        return context

    def cleanup(self):
        shutil.rmtree(self.path, ignore_errors=True)


# ==========================================
# EXECUTORS
# ==========================================

class IsolatedExecutor(ABC):
    """Runs materialized modules outside this process and returns what they export."""

    @abstractmethod
    async def execute(self, context: ModuleContext, jobs: List[ModuleJob]) -> List[Dict]:
        """
        Import every job's module in order inside `context`.

        Returns one dict per job: {"source": str} for default_function jobs,
        {"exports": {...}} for exports jobs.

        Raises:
            ExecutionError: If any module throws or a default export is not a
                zero-argument function
        """


class NodeExecutor(IsolatedExecutor):
    """Executor backed by a `node` subprocess running runtime/runner.mjs."""

    def __init__(self, node="node"):
        self.node = node

    async def execute(self, context, jobs):
        labels = {job.file_name: job.label or job.file_name for job in jobs}
        job_file = "__jsx_to_html_job.json"
        result_file = "__jsx_to_html_result.json"
        payload = {
            "directory": context.directory,
            "resultPath": context.path_for(result_file),
            "modules": [
                {"fileName": job.file_name, "capture": job.capture, "names": job.names}
                for job in jobs
            ],
        }
        job_path = await context.write(job_file, json.dumps(payload))

        try:
            process = await asyncio.create_subprocess_exec(
                self.node, context.path_for(RUNNER_FILE), job_path,
                cwd=context.directory,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise ConfigurationError(
                f"Node executable not found: {self.node}",
                suggestion="Install Node.js or set 'node' in jsx-to-html.json",
            )
        stdout, stderr = await process.communicate()
        if stdout.strip():
            debug_log(f"[node stdout] {stdout.decode(errors='replace').strip()}")
        if stderr.strip():
            debug_log(f"[node stderr] {stderr.decode(errors='replace').strip()}")

        try:
            result = await context.read_json(result_file)
        except (OSError, json.JSONDecodeError):
            raise ExecutionError(
                f"Module runner exited with status {process.returncode} without a result",
                path=context.directory,
                stack=stderr.decode(errors='replace') or None,
            )

        if not result.get("ok"):
            error = result.get("error") or {}
            file_name = error.get("fileName")
            suggestion = None
            if error.get("kind") in ("not-callable", "arity"):
                suggestion = "Script dependencies must `export default function () { ... }`"
            raise ExecutionError(
                error.get("message", "Module execution failed"),
                path=labels.get(file_name, file_name),
                stack=error.get("stack"),
                suggestion=suggestion,
            )

        return result["modules"]


# ==========================================
# RENDERER
# ==========================================

class IsolatedRenderer:
    """Materializes one entry at a time and executes it through an IsolatedExecutor."""

    def __init__(self, config, store, executor, scratch, dead=()):
        self.config = config
        self.store = store
        self.executor = executor
        self.scratch = scratch
        self.dead = list(dead)
        self._rendered = set()

    def _code(self, artifact):
        return strip_dead_imports(artifact.body, self.dead)

    async def render(self, entry, manifest):
        """
        Execute one entry chunk and capture its markup.

        Returns:
            RenderResult, or None if the compiled entry no longer exports markup

        Raises:
            ExecutionError: If the entry or a script dependency fails
            ScratchIOError: If materialization fails
        """
        if entry.file_name in self._rendered:
            raise RuntimeError(f"Entry {entry.file_name} was already rendered in this build")
        self._rendered.add(entry.file_name)

        declaration = entry.declaration
        context = await self.scratch.context_for(entry.logical_name)

        written = set()
        for file_name in required_chunks(entry.chunk, self.store, self.dead):
            await context.write(file_name, self._code(self.store[file_name]))
            written.add(file_name)

        header = get_render_header(self.config.create_element_module, self.config.render_module)
        await context.write(entry.file_name, f"{header}\n{self._code(entry.chunk)}")

        jobs = []
        for file_name in manifest.script_ids:
            artifact = self.store[file_name]
            if isinstance(artifact, Chunk):
                # Chunk-backed scripts bring their own chunk imports; raw source assets are written alone
                for dependency in required_chunks(artifact, self.store, self.dead):
                    if dependency not in written:
                        await context.write(dependency, self._code(self.store[dependency]))
                        written.add(dependency)
            await context.write(file_name, self._code(artifact))
            jobs.append(ModuleJob(
                file_name=file_name,
                capture="default_function",
                label=declaration.sources.get(file_name, file_name),
            ))
        jobs.append(ModuleJob(
            file_name=entry.file_name,
            capture="exports",
            names=[MARKUP_EXPORT, SCRIPTS_EXPORT, STYLES_EXPORT],
            label=declaration.module_id,
        ))

        debug_log(f"Rendering {entry.file_name} in {context.directory}")
        results = await self.executor.execute(context, jobs)

        exports = results[-1].get("exports", {})
        if MARKUP_EXPORT not in exports:
            warn(f"{entry.file_name} did not export rendered markup; no HTML emitted for it")
            return None

        markup = exports[MARKUP_EXPORT]
        if not isinstance(markup, str):
            raise ExecutionError(
                f"Rendered markup is {type(markup).__name__}, expected a string",
                path=declaration.module_id,
            )

        declared = (exports.get(SCRIPTS_EXPORT), exports.get(STYLES_EXPORT))
        if declared != (declaration.script_ids, declaration.style_ids):
            debug_log(f"{entry.file_name}: exported dependency lists differ from transform-time declaration")

        return RenderResult(
            entry=entry.file_name,
            markup=markup,
            consumed_script_ids=frozenset(manifest.script_ids),
            consumed_style_ids=frozenset(manifest.style_ids),
            script_sources={
                file_name: result["source"]
                for file_name, result in zip(manifest.script_ids, results)
            },
        )
