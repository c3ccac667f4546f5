"""Text chunking for the message-content channel."""

from collections.abc import Iterable, Iterator


def batch_fragments(fragments: Iterable[str], batch_size: int = 20) -> Iterator[str]:
    """Join fragments until a batch holds at least ``batch_size`` chars."""
    pending: list[str] = []
    pending_len = 0
    for fragment in fragments:
        pending.append(fragment)
        pending_len += len(fragment)
        if pending_len >= batch_size:
            yield "".join(pending)
            pending, pending_len = [], 0
    if pending_len:
        yield "".join(pending)


def chunk_text(text: str, batch_size: int = 20) -> Iterator[str]:
    """
    Split text into message-content deltas.

    Cuts only at line ends, so an incrementally rendering client never
    shows a partial line unless that line alone exceeds ``batch_size``.
    Concatenating the chunks gives back ``text``.
    """
    return batch_fragments(text.splitlines(keepends=True), batch_size)


__all__ = ["batch_fragments", "chunk_text"]
