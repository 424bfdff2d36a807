"""Generation pipelines, one per schema kind.

Each generator builds its whole output tree in memory, then replaces its own
subtree under ``<output>/src/SwiftlyS2.Generated/`` in one go. Generators
share no state, so :func:`run_generators` runs them side by side and turns
any failure into a :class:`GeneratorResult` instead of letting it escape.
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from s2bindgen.errors import SchemaSourceError
from s2bindgen.event_emitter import EventBindingGenerator
from s2bindgen.event_parser import parse_event_directory
from s2bindgen.native_emitter import NativeTrampolineEmitter
from s2bindgen.native_parser import NativeSignatureParser, find_native_files
from s2bindgen.naming import WordSegmenter
from s2bindgen.proto_adapter import ProtoSchemaAdapter
from s2bindgen.proto_loader import load_descriptor_set
from s2bindgen.sources import fetch_event_sources

logger = logging.getLogger(__name__)

GENERATED_ROOT = Path("src") / "SwiftlyS2.Generated"


@dataclass
class GeneratorResult:
    success: bool
    error_message: Optional[str] = None
    exception: Optional[BaseException] = None


class BaseGenerator:
    name = ""
    subdir = ""

    def __init__(self, output_root: Path):
        self.output_root = Path(output_root)

    @property
    def output_path(self) -> Path:
        return self.output_root / GENERATED_ROOT / self.subdir

    def build(self) -> Dict[str, str]:
        """Return ``relative path -> file content`` for the whole subtree."""
        raise NotImplementedError

    def generate(self) -> GeneratorResult:
        try:
            files = self.build()
            self.write_outputs(files)
        except Exception as exc:
            logger.error("%s generator failed: %s", self.name, exc)
            logger.debug("%s generator traceback", self.name, exc_info=True)
            return GeneratorResult(success=False, error_message=str(exc), exception=exc)
        logger.info("%s: wrote %d file(s) to %s", self.name, len(files), self.output_path)
        return GeneratorResult(success=True)

    def write_outputs(self, files: Dict[str, str]) -> None:
        out_dir = self.output_path
        if out_dir.exists():
            shutil.rmtree(out_dir)
        out_dir.mkdir(parents=True)
        for relative, content in sorted(files.items()):
            path = out_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="\n") as handle:
                handle.write(content)


class NativesGenerator(BaseGenerator):
    name = "Natives"
    subdir = "Natives"

    def __init__(self, output_root: Path, natives_path: Path):
        super().__init__(output_root)
        self.natives_path = Path(natives_path)

    def build(self) -> Dict[str, str]:
        if not self.natives_path.is_dir():
            raise SchemaSourceError(f"Natives directory not found: {self.natives_path}")

        parser = NativeSignatureParser()
        emitter = NativeTrampolineEmitter()
        files: Dict[str, str] = {}
        for path in find_native_files(self.natives_path):
            native_class = parser.parse_file(path)
            if native_class is None:
                logger.debug("Native file %s is empty, skipping", path)
                continue
            files[emitter.file_name(native_class)] = emitter.generate(native_class)
        return files


class GameEventsGenerator(BaseGenerator):
    name = "GameEvents"
    subdir = "GameEvents"

    def __init__(
        self,
        output_root: Path,
        gameevents_path: Path,
        *,
        offline: bool = False,
        segmenter: Optional[WordSegmenter] = None,
    ):
        super().__init__(output_root)
        self.gameevents_path = Path(gameevents_path)
        self.offline = offline
        self.segmenter = segmenter

    def build(self) -> Dict[str, str]:
        fetch_event_sources(self.gameevents_path, offline=self.offline)
        events = parse_event_directory(self.gameevents_path)
        logger.info("Parsed %d game event(s)", len(events))
        return EventBindingGenerator(self.segmenter).generate(events.values())


class ProtobufsGenerator(BaseGenerator):
    name = "Protobufs"
    subdir = "Protobufs"

    def __init__(self, output_root: Path, protobufs_path: Path):
        super().__init__(output_root)
        self.protobufs_path = Path(protobufs_path)

    def build(self) -> Dict[str, str]:
        descriptor_set, explicit_files = load_descriptor_set(self.protobufs_path)
        return ProtoSchemaAdapter(descriptor_set, explicit_files).generate()


def run_generators(
    generators: Sequence[BaseGenerator],
) -> List[Tuple[BaseGenerator, GeneratorResult]]:
    """Run every generator concurrently and wait for all of them."""
    if not generators:
        return []
    with ThreadPoolExecutor(max_workers=len(generators)) as pool:
        futures = [(generator, pool.submit(generator.generate)) for generator in generators]
        return [(generator, future.result()) for generator, future in futures]
