import textwrap
import warnings

from google.protobuf.descriptor_pb2 import FieldDescriptorProto, FileDescriptorSet

from s2bindgen import generators
from s2bindgen.errors import NetMessageCorrelationWarning
from s2bindgen.generators import (
    GENERATED_ROOT,
    BaseGenerator,
    GameEventsGenerator,
    GeneratorResult,
    NativesGenerator,
    ProtobufsGenerator,
    run_generators,
)

NATIVE = textwrap.dedent(
    """\
    class swiftly.core.EntitySystem
    sync ptr GetEntity = int32 index
    string GetName = ptr entity
    """
)

EVENTS = textwrap.dedent(
    """\
    "CoreEvents"
    {
        "player_death"  // a player was killed
        {
            "userid"    "short"
            "headshot"  "bool"
        }
    }
    """
)


def write_natives(root):
    natives = root / "natives"
    (natives / "core").mkdir(parents=True)
    (natives / "core" / "entity.native").write_text(NATIVE, encoding="utf-8")
    (natives / "empty.native").write_text("", encoding="utf-8")
    return natives


def write_events(root):
    events = root / "gameevents"
    events.mkdir()
    (events / "core.gameevents").write_text(EVENTS, encoding="utf-8")
    (events / "game.gameevents").write_text("", encoding="utf-8")
    (events / "mod.gameevents").write_text("", encoding="utf-8")
    return events


def shake_descriptor_set():
    descriptor_set = FileDescriptorSet()
    proto = descriptor_set.file.add(name="usermessages.proto")
    ids = proto.enum_type.add(name="EBaseUserMessages")
    ids.value.add(name="UM_Shake", number=110)
    shake = proto.message_type.add(name="CUserMessageShake")
    shake.field.add(
        name="duration",
        number=1,
        type=FieldDescriptorProto.TYPE_FLOAT,
        label=FieldDescriptorProto.LABEL_OPTIONAL,
    )
    return descriptor_set


def stub_descriptor_loader(monkeypatch, descriptor_set):
    monkeypatch.setattr(
        generators,
        "load_descriptor_set",
        lambda path: (descriptor_set, ["usermessages.proto"]),
    )


def snapshot(directory):
    return {
        path.relative_to(directory).as_posix(): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def test_natives_generator_writes_one_file_per_native(tmp_path):
    output = tmp_path / "output"
    generator = NativesGenerator(output, write_natives(tmp_path))

    result = generator.generate()

    assert result == GeneratorResult(success=True)
    assert generator.output_path == output / GENERATED_ROOT / "Natives"
    written = snapshot(generator.output_path)
    assert list(written) == ["EntitySystem.cs"]
    assert b"internal static class NativeEntitySystem" in written["EntitySystem.cs"]


def test_missing_natives_directory_fails_without_raising(tmp_path):
    result = NativesGenerator(tmp_path / "output", tmp_path / "nope").generate()

    assert result.success is False
    assert "Natives directory not found" in result.error_message
    assert result.exception is not None


def test_game_events_generator_uses_cached_sources_offline(tmp_path, segmenter):
    output = tmp_path / "output"
    generator = GameEventsGenerator(output, write_events(tmp_path), offline=True, segmenter=segmenter)

    assert generator.generate().success

    written = snapshot(generator.output_path)
    assert "Interfaces/EventPlayerDeath.cs" in written
    assert "Classes/EventPlayerDeathImpl.cs" in written
    assert "Interfaces/EventCoreEvents.cs" in written


def test_rerun_is_byte_identical(tmp_path, segmenter, monkeypatch):
    stub_descriptor_loader(monkeypatch, shake_descriptor_set())
    output = tmp_path / "output"
    pipelines = [
        GameEventsGenerator(output, write_events(tmp_path), offline=True, segmenter=segmenter),
        NativesGenerator(output, write_natives(tmp_path)),
        ProtobufsGenerator(output, tmp_path / "protos"),
    ]

    assert all(generator.generate().success for generator in pipelines)
    first = snapshot(output)
    assert all(generator.generate().success for generator in pipelines)

    assert {path.split("/")[2] for path in first} == {"GameEvents", "Natives", "Protobufs"}
    assert snapshot(output) == first
    assert all(b"\r\n" not in content for content in first.values())


def test_generator_replaces_only_its_own_subtree(tmp_path, segmenter):
    output = tmp_path / "output"
    natives = NativesGenerator(output, write_natives(tmp_path))
    stale = natives.output_path / "Stale.cs"
    stale.parent.mkdir(parents=True)
    stale.write_text("old", encoding="utf-8")
    sibling = output / GENERATED_ROOT / "GameEvents" / "Keep.cs"
    sibling.parent.mkdir(parents=True)
    sibling.write_text("keep", encoding="utf-8")

    assert natives.generate().success

    assert not stale.exists()
    assert sibling.read_text(encoding="utf-8") == "keep"


def test_protobufs_generator_emits_adapter_output(tmp_path, monkeypatch):
    stub_descriptor_loader(monkeypatch, shake_descriptor_set())
    generator = ProtobufsGenerator(tmp_path / "output", tmp_path / "protos")

    with warnings.catch_warnings():
        warnings.simplefilter("error", NetMessageCorrelationWarning)
        assert generator.generate().success

    written = snapshot(generator.output_path)
    assert set(written) == {
        "Enums/EBaseUserMessages.cs",
        "Interfaces/CUserMessageShake.cs",
        "Classes/CUserMessageShakeImpl.cs",
    }
    assert b"MessageId => 110;" in written["Interfaces/CUserMessageShake.cs"]


class ExplodingGenerator(BaseGenerator):
    name = "Exploding"
    subdir = "Exploding"

    def build(self):
        raise RuntimeError("boom")


def test_runner_isolates_failing_generator(tmp_path):
    output = tmp_path / "output"
    failing = ExplodingGenerator(output)
    natives = NativesGenerator(output, write_natives(tmp_path))

    results = run_generators([failing, natives])

    assert [(g.name, r.success) for g, r in results] == [("Exploding", False), ("Natives", True)]
    failed = results[0][1]
    assert failed.error_message == "boom"
    assert isinstance(failed.exception, RuntimeError)
    assert (natives.output_path / "EntitySystem.cs").is_file()
    assert not failing.output_path.exists()


def test_runner_with_no_generators():
    assert run_generators([]) == []
