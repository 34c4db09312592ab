from dataclasses import dataclass
from typing import Iterator, List, TextIO

# Placeholders used in place of real object ids; hooks must not diff on them
PREVIOUS_ID_SENTINEL = "0000000"
NEW_ID_MARKER = "HEAD"


@dataclass(frozen=True)
class PushEvent:
    """One post-receive input line"""

    ref: str
    previous_id: str = PREVIOUS_ID_SENTINEL
    new_id: str = NEW_ID_MARKER

    def to_line(self) -> str:
        return f"{self.previous_id} {self.new_id} {self.ref}\n"

    @classmethod
    def synthesize(cls, ref: str) -> "PushEvent":
        return cls(ref=ref)

    @classmethod
    def parse_line(cls, line: str) -> "PushEvent":
        parts = line.split()
        if len(parts) != 3:
            raise ValueError(f"Malformed post-receive line: {line!r}")
        previous_id, new_id, ref = parts
        return cls(ref=ref, previous_id=previous_id, new_id=new_id)


def read_events(stream: TextIO) -> List[PushEvent]:
    """Parse post-receive input, skipping blank lines"""
    return list(_iter_events(stream))


def _iter_events(stream: TextIO) -> Iterator[PushEvent]:
    for line in stream:
        if line.strip():
            yield PushEvent.parse_line(line)
