from s2bindgen.model import NativeClass, NativeFunctionSignature, NativeParameter
from s2bindgen.native_emitter import NativeTrampolineEmitter, plan_native_call


def sig(return_type, name, *params, is_sync=False, comment=None):
    return NativeFunctionSignature(
        return_type=return_type,
        name=name,
        params=[NativeParameter(t, n) for t, n in params],
        is_sync=is_sync,
        comment=comment,
    )


def emit(signature):
    return "\n".join(NativeTrampolineEmitter().generate_function(signature))


def test_string_return_plan_uses_length_plus_terminator():
    plan = plan_native_call(sig("string", "GetName", ("string", "key")))

    assert plan.return_rental is not None
    assert plan.return_rental.size_expr == "ret + 1"
    assert [r.buffer for r in plan.rentals] == ["keyBuffer"]
    assert plan.rentals[0].size_expr == "keyLength + 1"
    assert plan.delegate_signature == "byte*, byte*, int"


def test_two_phase_string_return_releases_each_buffer_once():
    text = emit(sig("string", "GetName", ("string", "key")))

    assert "var ret = _GetName(null, keyBufferPtr);" in text
    assert "var retBuffer = pool.Rent(ret + 1);" in text
    assert "ret = _GetName(retBufferPtr, keyBufferPtr);" in text
    assert "return Encoding.UTF8.GetString(retBufferPtr, ret);" in text
    assert text.count("pool.Return(retBuffer);") == 1
    assert text.count("pool.Return(keyBuffer);") == 1
    assert text.count("var pool = ArrayPool<byte>.Shared;") == 1


def test_buffers_are_released_in_finally_blocks():
    text = emit(sig("string", "GetName", ("string", "key")))
    lines = [line.strip() for line in text.splitlines()]

    ret_release = lines.index("pool.Return(retBuffer);")
    key_release = lines.index("pool.Return(keyBuffer);")
    assert lines[ret_release - 2] == "finally"
    assert lines[key_release - 2] == "finally"
    # Return buffer is released before the parameter buffers it was rented under.
    assert ret_release < key_release
    assert lines.index("var keyBuffer = pool.Rent(keyLength + 1);") < lines.index("try")


def test_bytes_return_copies_reported_length():
    text = emit(sig("bytes", "Serialize", ("ptr", "entity")))

    assert "private unsafe static delegate* unmanaged<byte*, nint, int> _Serialize;" in text
    assert "public unsafe static byte[] Serialize(nint entity)" in text
    assert "var ret = _Serialize(null, entity);" in text
    assert "var retBytes = new byte[ret];" in text
    assert "return retBytes;" in text
    assert text.count("pool.Return(retBuffer);") == 1


def test_string_parameter_is_null_terminated():
    text = emit(sig("void", "Print", ("string", "message")))

    assert "var messageLength = Encoding.UTF8.GetByteCount(message);" in text
    assert "Encoding.UTF8.GetBytes(message, messageBuffer);" in text
    assert "messageBuffer[messageLength] = 0;" in text
    assert "fixed (byte* messageBufferPtr = messageBuffer)" in text
    assert "_Print(messageBufferPtr);" in text
    assert text.count("pool.Return(messageBuffer);") == 1


def test_bytes_parameter_passes_pointer_and_length():
    text = emit(sig("void", "Send", ("bytes", "payload"), ("bool", "reliable")))

    assert "private unsafe static delegate* unmanaged<byte*, int, byte, void> _Send;" in text
    assert "public unsafe static void Send(byte[] payload, bool reliable)" in text
    assert "var payloadLength = payload.Length;" in text
    assert "fixed (byte* payloadBufferPtr = payload)" in text
    assert "_Send(payloadBufferPtr, payloadLength, reliable ? (byte)1 : (byte)0);" in text
    assert "ArrayPool" not in text


def test_bool_return_is_decoded_from_byte():
    text = emit(sig("bool", "IsValid", ("ptr", "entity")))

    assert "private unsafe static delegate* unmanaged<nint, byte> _IsValid;" in text
    assert "var ret = _IsValid(entity);" in text
    assert "return ret == 1;" in text


def test_fixed_size_return_passes_through():
    text = emit(sig("int32", "GetCount"))

    assert "private unsafe static delegate* unmanaged<int> _GetCount;" in text
    assert "public unsafe static int GetCount()" in text
    assert "return ret;" in text
    assert "pool" not in text


def test_sync_function_asserts_main_thread_first():
    text = emit(sig("void", "Reset", is_sync=True))
    lines = [line.strip() for line in text.splitlines()]

    guard = lines.index("if (!NativeBinding.IsMainThread)")
    assert "InvalidOperationException" in lines[guard + 2]
    assert guard < lines.index("_Reset();")


def test_comment_becomes_summary():
    text = emit(sig("void", "Reset", comment="Resets the world"))

    assert "/// Resets the world" in text


def test_class_file_layout():
    native_class = NativeClass(
        namespace="swiftly.core",
        class_name="EntitySystem",
        functions=[sig("void", "Reset"), sig("bool", "IsValid", ("ptr", "entity"))],
    )
    emitter = NativeTrampolineEmitter()

    text = emitter.generate(native_class)

    assert emitter.file_name(native_class) == "EntitySystem.cs"
    assert "namespace SwiftlyS2.Core.Natives;" in text
    assert "using System.Buffers;" in text
    assert "internal static class NativeEntitySystem" in text
    assert text.index("_Reset;") < text.index("_IsValid;")
    assert text.endswith("}\n")
