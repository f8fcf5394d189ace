from dataclasses import dataclass
from typing import Dict

from watchable import ListenerDispatchError, Watchable, and_then, register_type
from watchable.codecs import BinaryCellCodec, TextCellCodec, dumps, loads, packb, unpackb

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Watching a value")
print("-" * 100)
print()

# A Watchable holds one value and tells its listeners about every replacement.
current_age = Watchable.of(30)
current_age.watch(lambda old, new: print(f"Age changed from {old} to {new}"))
current_age.set(31)

# Listeners can be chained into a single listener.
log_name = lambda old, new: print(f"Name: {old} -> {new}")
shout_name = lambda old, new: print(f"NAME: {str(new).upper()}")

current_name = Watchable.of("Alice").watch(and_then(log_name, shout_name))
current_name.set("Bob")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Failing listeners")
print("-" * 100)
print()


def reject_negative(old, new):
    if new < 0:
        raise ValueError(f"{new} is negative")


balance = Watchable.of(10).watch(reject_negative)
balance.watch(lambda old, new: print(f"Balance is now {new}"))

try:
    balance.set(-5)
except ListenerDispatchError as e:
    # Every listener still ran; the failures are collected on the error.
    print(f"Caught: {e} ({e.errors[0]})")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Serializing cells")
print("-" * 100)
print()


@register_type
@dataclass
class Point:
    x: float
    y: float


text_codec = TextCellCodec()
print(text_codec.encode(Watchable.of("hello")))

# Nested cells keep the runtime type of their values.
document = dumps({"origin": Watchable(Point(0, 0)), "tags": Watchable(["a", "b"])})
print(document)
print(loads(document, into=Dict[str, Watchable])["origin"].get())

# Without a target type, envelopes stay plain JSON objects.
print(loads(document)["tags"])

binary_codec = BinaryCellCodec[int]()
print(binary_codec.handled_type, binary_codec.to_bytes(Watchable(42)))
print(unpackb(packb([Watchable(1.5), Watchable(None)])))
