from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

from .sample import Sample


DEFAULT_CAPACITY = 20


@dataclass(frozen=True)
class RingBuffer:
    """Ventana acotada de las muestras más recientes.

    Inmutable: ``push`` y ``clear`` devuelven un buffer nuevo, de modo que
    quien lea una instancia nunca ve cómo cambia. El orden es el de
    inserción (la más antigua primero).
    """

    capacity: int = DEFAULT_CAPACITY
    samples: Tuple[Sample, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")
        if len(self.samples) > self.capacity:
            object.__setattr__(self, "samples", tuple(self.samples[-self.capacity:]))

    def push(self, sample: Sample) -> "RingBuffer":
        """Añade al final y descarta por la cabeza si se supera la capacidad."""
        samples = self.samples + (sample,)
        if len(samples) > self.capacity:
            samples = samples[1:]
        return RingBuffer(capacity=self.capacity, samples=samples)

    def clear(self) -> "RingBuffer":
        return RingBuffer(capacity=self.capacity)

    @property
    def latest(self) -> Optional[Sample]:
        return self.samples[-1] if self.samples else None

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)
