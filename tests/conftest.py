import gzip

import pytest

from s2bindgen.naming import WordSegmenter

WORDS = [
    "player",
    "attacker",
    "round",
    "end",
    "reason",
    "weapon",
    "health",
    "armor",
    "headshot",
    "pawn",
    "team",
    "target",
    "id",
]


@pytest.fixture
def segmenter(tmp_path):
    wordlist = tmp_path / "words.txt.gz"
    with gzip.open(wordlist, "wb") as handle:
        handle.write("\n".join(WORDS).encode("utf-8"))
    return WordSegmenter(wordlist)
