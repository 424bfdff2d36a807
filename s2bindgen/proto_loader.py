from __future__ import annotations

import logging
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Tuple

from google.protobuf import descriptor_pb2

from s2bindgen.errors import DescriptorLoadError, SchemaSourceError

logger = logging.getLogger(__name__)

PROTOC_TIMEOUT_SECONDS = 120


def find_proto_files(directory: Path) -> List[str]:
    """Return ``*.proto`` paths under ``directory``, relative and sorted."""
    root = Path(directory)
    return sorted(path.relative_to(root).as_posix() for path in root.rglob("*.proto"))


def load_descriptor_set(
    directory: Path,
) -> Tuple[descriptor_pb2.FileDescriptorSet, List[str]]:
    """Compile every ``.proto`` in ``directory`` into one descriptor set.

    Runs ``grpc_tools.protoc`` with ``--include_imports`` so imported files
    stay resolvable; the returned name list holds only the files that were
    asked for.
    """
    root = Path(directory)
    if not root.is_dir():
        raise SchemaSourceError(f"Protobufs directory not found: {root}")

    proto_files = find_proto_files(root)
    if not proto_files:
        raise SchemaSourceError(f"No .proto files found in {root}")

    logger.info("Compiling %d proto file(s) from %s", len(proto_files), root)
    with tempfile.TemporaryDirectory(prefix="s2bindgen-") as tmp_dir:
        descriptor_path = Path(tmp_dir) / "descriptors.pb"
        cmd = [
            sys.executable,
            "-m",
            "grpc_tools.protoc",
            f"--proto_path={root}",
            "--include_imports",
            f"--descriptor_set_out={descriptor_path}",
            *proto_files,
        ]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=PROTOC_TIMEOUT_SECONDS,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DescriptorLoadError(f"Failed to run protoc: {exc}") from exc

        if result.returncode != 0:
            raise DescriptorLoadError(
                f"protoc failed with exit code {result.returncode}:\n{result.stderr.strip()}"
            )

        descriptor_set = descriptor_pb2.FileDescriptorSet()
        descriptor_set.ParseFromString(descriptor_path.read_bytes())

    return descriptor_set, proto_files
