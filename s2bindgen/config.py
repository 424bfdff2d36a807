from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from s2bindgen.generators import (
    BaseGenerator,
    GameEventsGenerator,
    NativesGenerator,
    ProtobufsGenerator,
)
from s2bindgen.naming import WordSegmenter

GENERATOR_NAMES: Tuple[str, ...] = ("natives", "gameevents", "protobufs")

DEFAULT_NATIVES_PATH = Path("data") / "natives"
DEFAULT_GAMEEVENTS_PATH = Path("data") / "gameevents"
DEFAULT_PROTOBUFS_PATH = Path("protobufs") / "cs2"
DEFAULT_OUTPUT_ROOT = Path("output")


@dataclass
class GeneratorOptions:
    output_root: Path = DEFAULT_OUTPUT_ROOT
    natives_path: Path = DEFAULT_NATIVES_PATH
    gameevents_path: Path = DEFAULT_GAMEEVENTS_PATH
    protobufs_path: Path = DEFAULT_PROTOBUFS_PATH
    wordlist_path: Optional[Path] = None
    offline: bool = False
    selected: List[str] = field(default_factory=lambda: list(GENERATOR_NAMES))

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "GeneratorOptions":
        selected = list(dict.fromkeys(args.only)) if args.only else list(GENERATOR_NAMES)
        return cls(
            output_root=Path(args.output),
            natives_path=Path(args.natives_path),
            gameevents_path=Path(args.gameevents_path),
            protobufs_path=Path(args.protobufs_path),
            wordlist_path=Path(args.wordlist) if args.wordlist else None,
            offline=args.offline,
            selected=selected,
        )


def build_generators(options: GeneratorOptions) -> List[BaseGenerator]:
    generators: List[BaseGenerator] = []
    for name in GENERATOR_NAMES:
        if name not in options.selected:
            continue
        if name == "natives":
            generators.append(NativesGenerator(options.output_root, options.natives_path))
        elif name == "gameevents":
            generators.append(
                GameEventsGenerator(
                    options.output_root,
                    options.gameevents_path,
                    offline=options.offline,
                    segmenter=WordSegmenter(options.wordlist_path),
                )
            )
        else:
            generators.append(ProtobufsGenerator(options.output_root, options.protobufs_path))
    return generators
