import json
from typing import Iterable, List, Sequence

INDENT = "    "

# Generated files opt back into nullable annotations, which the marker turns off.
GENERATED_HEADER = ("// <auto-generated /> s2bindgen", "#nullable enable")


def indent(lines: Iterable[str], level: int = 1) -> List[str]:
    pad = INDENT * level
    return [pad + line if line else "" for line in lines]


def block(header: str, body: Sequence[str]) -> List[str]:
    return [header, "{", *indent(body), "}"]


def summary(*text: str) -> List[str]:
    return ["/// <summary>", *[f"/// {line}" for line in text], "/// </summary>"]


def string_literal(value: str) -> str:
    # JSON string escapes are a subset of C# regular string escapes.
    return json.dumps(value)


def usings(*namespaces: str) -> List[str]:
    return [f"using {namespace};" for namespace in namespaces]


def render_file(lines: Iterable[str]) -> str:
    text = "\n".join(lines).rstrip("\n")
    return text + "\n"
