from __future__ import annotations

import pytest

import s2bindgen
from s2bindgen.errors import CodegenError, NativeSchemaError, SchemaError


def test_public_api_exposes_version_and_about() -> None:
    assert isinstance(s2bindgen.__version__, str)
    text = s2bindgen.about(print_output=False)
    assert "SwiftlyS2.Generated" in text
    assert "Regeneration" in text


def test_public_api_all_contains_core_exports() -> None:
    exported = set(s2bindgen.__all__)
    assert "GameEventParser" in exported
    assert "NativeTrampolineEmitter" in exported
    assert "ProtoSchemaAdapter" in exported
    assert "run_generators" in exported
    assert "__version__" in exported
    for name in exported:
        assert hasattr(s2bindgen, name)


def test_error_hierarchy() -> None:
    assert issubclass(NativeSchemaError, SchemaError)
    assert issubclass(SchemaError, CodegenError)
    assert issubclass(s2bindgen.EventHashCollisionWarning, UserWarning)


def test_native_parser_error_is_actionable() -> None:
    with pytest.raises(NativeSchemaError, match="Unknown native type 'float3'"):
        s2bindgen.NativeSignatureParser().parse("class a.B\nfloat3 Get = void\n")
