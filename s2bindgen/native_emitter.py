"""C# trampolines for engine natives.

Each signature becomes an unresolved ``delegate* unmanaged`` slot plus a
public wrapper that marshals arguments across the call:

- ``string`` arguments are UTF-8 encoded into a pool-rented, null-terminated
  buffer;
- ``bytes`` arguments are pinned and followed by an explicit length;
- ``bool`` arguments travel as one byte.

``string``/``bytes`` returns use the two-phase protocol. The first call
with a null output pointer reports the length, then a buffer of
``length + 1`` is rented and the second call fills it.

Every rented buffer is represented by a :class:`BufferRental` and rendered
as ``try``/``finally`` around everything that runs after the rental, so each
``pool.Return`` is emitted once and runs on every exit path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from s2bindgen import csharp
from s2bindgen.model import NativeClass, NativeFunctionSignature
from s2bindgen.typesys import (
    NATIVE_DELEGATE_PARAM_TYPES,
    NATIVE_DELEGATE_RETURN_TYPES,
    NATIVE_PARAM_TYPES,
    NATIVE_RETURN_TYPES,
    is_buffer_return,
)

POOL_DECLARATION = "var pool = ArrayPool<byte>.Shared;"
MAIN_THREAD_GUARD = (
    'throw new InvalidOperationException("This method can only be called from the main thread.");'
)
RETURN_BUFFER_NAME = "ret"


@dataclass(frozen=True)
class BufferRental:
    """A pool-rented buffer that must be handed back on every exit path."""

    name: str
    length_expr: str
    setup: Tuple[str, ...] = ()
    fill: Tuple[str, ...] = ()

    @property
    def buffer(self) -> str:
        return f"{self.name}Buffer"

    @property
    def pointer(self) -> str:
        return f"{self.name}BufferPtr"

    @property
    def size_expr(self) -> str:
        # One extra byte for the null terminator.
        return f"{self.length_expr} + 1"

    def rent(self) -> str:
        return f"var {self.buffer} = pool.Rent({self.size_expr});"

    def release(self) -> str:
        return f"pool.Return({self.buffer});"

    def guard(self, body: Sequence[str]) -> List[str]:
        return [
            *self.setup,
            self.rent(),
            *csharp.block("try", [*self.fill, *body]),
            *csharp.block("finally", [self.release()]),
        ]


def string_rental(param_name: str) -> BufferRental:
    length = f"{param_name}Length"
    return BufferRental(
        name=param_name,
        length_expr=length,
        setup=(f"var {length} = Encoding.UTF8.GetByteCount({param_name});",),
        fill=(
            f"Encoding.UTF8.GetBytes({param_name}, {param_name}Buffer);",
            f"{param_name}Buffer[{length}] = 0;",
        ),
    )


@dataclass
class NativeCallPlan:
    signature: NativeFunctionSignature
    rentals: List[BufferRental] = field(default_factory=list)
    pinned: List[Tuple[str, str]] = field(default_factory=list)
    preamble: List[str] = field(default_factory=list)
    arguments: List[str] = field(default_factory=list)
    delegate_types: List[str] = field(default_factory=list)
    return_rental: Optional[BufferRental] = None

    @property
    def needs_pool(self) -> bool:
        return bool(self.rentals) or self.return_rental is not None

    @property
    def delegate_signature(self) -> str:
        return_type = NATIVE_DELEGATE_RETURN_TYPES[self.signature.return_type]
        return ", ".join([*self.delegate_types, return_type])

    def call(self, output_pointer: Optional[str] = None) -> str:
        args = list(self.arguments)
        if output_pointer is not None:
            args.insert(0, output_pointer)
        return f"_{self.signature.name}({', '.join(args)})"


def plan_native_call(signature: NativeFunctionSignature) -> NativeCallPlan:
    plan = NativeCallPlan(signature=signature)
    if is_buffer_return(signature.return_type):
        plan.delegate_types.append("byte*")
        plan.return_rental = BufferRental(name=RETURN_BUFFER_NAME, length_expr=RETURN_BUFFER_NAME)

    for param in signature.params:
        plan.delegate_types.append(NATIVE_DELEGATE_PARAM_TYPES[param.type_name])
        if param.type_name == "string":
            rental = string_rental(param.name)
            plan.rentals.append(rental)
            plan.pinned.append((rental.pointer, rental.buffer))
            plan.arguments.append(rental.pointer)
        elif param.type_name == "bytes":
            pointer = f"{param.name}BufferPtr"
            length = f"{param.name}Length"
            plan.delegate_types.append("int")
            plan.preamble.append(f"var {length} = {param.name}.Length;")
            plan.pinned.append((pointer, param.name))
            plan.arguments.extend([pointer, length])
        elif param.type_name == "bool":
            plan.arguments.append(f"{param.name} ? (byte)1 : (byte)0")
        else:
            plan.arguments.append(param.name)
    return plan


def _pinned(pointer: str, source: str, body: Sequence[str]) -> List[str]:
    return csharp.block(f"fixed (byte* {pointer} = {source})", body)


class NativeTrampolineEmitter:
    def generate(self, native_class: NativeClass) -> str:
        body: List[str] = []
        for signature in native_class.functions:
            body.extend(self.generate_function(signature))

        lines = [
            *csharp.GENERATED_HEADER,
            "#pragma warning disable CS0649",
            "#pragma warning disable CS0169",
            "",
            *csharp.usings(
                "System.Buffers",
                "System.Text",
                "System.Threading",
                "SwiftlyS2.Shared.Natives",
            ),
            "",
            "namespace SwiftlyS2.Core.Natives;",
            "",
            *csharp.block(f"internal static class Native{native_class.class_name}", body),
        ]
        return csharp.render_file(lines)

    def file_name(self, native_class: NativeClass) -> str:
        return f"{native_class.class_name}.cs"

    def generate_function(self, signature: NativeFunctionSignature) -> List[str]:
        plan = plan_native_call(signature)
        lines = [
            "",
            f"private unsafe static delegate* unmanaged<{plan.delegate_signature}> _{signature.name};",
            "",
        ]
        if signature.comment:
            lines.extend(csharp.summary(signature.comment))

        params = ", ".join(
            f"{NATIVE_PARAM_TYPES[param.type_name]} {param.name}" for param in signature.params
        )
        return_type = NATIVE_RETURN_TYPES[signature.return_type]
        header = f"public unsafe static {return_type} {signature.name}({params})"
        lines.extend(csharp.block(header, self._method_body(plan)))
        return lines

    def _method_body(self, plan: NativeCallPlan) -> List[str]:
        body: List[str] = []
        if plan.signature.is_sync:
            body.extend(csharp.block("if (!NativeBinding.IsMainThread)", [MAIN_THREAD_GUARD]))
        if plan.needs_pool:
            body.append(POOL_DECLARATION)
        body.extend(plan.preamble)

        inner = self._call_lines(plan)
        for pointer, source in reversed(plan.pinned):
            inner = _pinned(pointer, source, inner)
        for rental in reversed(plan.rentals):
            inner = rental.guard(inner)
        body.extend(inner)
        return body

    def _call_lines(self, plan: NativeCallPlan) -> List[str]:
        return_type = plan.signature.return_type
        rental = plan.return_rental
        if rental is not None:
            second_phase = [f"ret = {plan.call(rental.pointer)};"]
            if return_type == "string":
                second_phase.append("return Encoding.UTF8.GetString(retBufferPtr, ret);")
            else:
                second_phase.extend(
                    [
                        "var retBytes = new byte[ret];",
                        "for (int i = 0; i < ret; i++) retBytes[i] = retBufferPtr[i];",
                        "return retBytes;",
                    ]
                )
            return [
                f"var ret = {plan.call('null')};",
                *rental.guard(_pinned(rental.pointer, rental.buffer, second_phase)),
            ]

        if return_type == "void":
            return [f"{plan.call()};"]
        if return_type == "bool":
            return [f"var ret = {plan.call()};", "return ret == 1;"]
        return [f"var ret = {plan.call()};", "return ret;"]
