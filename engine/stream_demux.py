"""
engine/stream_demux.py — Split a token stream of back-to-back JSON objects.

The model streams slides as ``{...}{...}{...}`` with no separator. The buffer
is split wherever one object closes and the next opens; every segment except
the last is re-closed and validated, the last stays buffered until more text
arrives or the stream ends.

Known limitation: a ``}{`` inside a JSON string value also splits the buffer.
Both halves then fail to parse and are dropped; nothing is mis-emitted.
"""

from __future__ import annotations

import codecs
import json
import re
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional, Union

from engine.pipeline_logger import PipelineLogger
from engine.schema_validator import SchemaId, clip_to_bounds, validate_partial

_BOUNDARY_RE = re.compile(r"\}\s*\{")
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class StreamDemultiplexer:
    """Incremental splitter; one instance per stream."""

    def __init__(self, schema_id: SchemaId = SchemaId.BLUEPRINT_SLIDE) -> None:
        self.schema_id = schema_id
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._log = PipelineLogger("StreamDemux")
        self.dropped = 0

    def feed(self, chunk: Union[str, bytes]) -> List[Dict[str, Any]]:
        """Append a chunk and return every artifact it completed."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        if not chunk:
            return []
        self._buffer += chunk

        parts = _BOUNDARY_RE.split(self._buffer)
        if len(parts) == 1:
            return []

        emitted = []
        for i, part in enumerate(parts[:-1]):
            segment = ("{" if i > 0 else "") + part + "}"
            artifact = self._accept(segment)
            if artifact is not None:
                emitted.append(artifact)
        self._buffer = "{" + parts[-1]
        return emitted

    def close(self) -> List[Dict[str, Any]]:
        """Flush the decoder and try the remaining buffer as a final object."""
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self._buffer += tail
        remaining, self._buffer = self._buffer.strip(), ""
        if not remaining:
            return []
        artifact = self._accept(remaining)
        return [artifact] if artifact is not None else []

    def _accept(self, segment: str) -> Optional[Dict[str, Any]]:
        text = _FENCE_RE.sub("", segment).strip()
        start = text.find("{")
        if start > 0:
            text = text[start:]
        try:
            candidate = json.loads(text)
        except json.JSONDecodeError:
            self.dropped += 1
            self._log.debug(f"Dropped unparseable segment ({len(segment)} chars)")
            return None
        result = validate_partial(clip_to_bounds(candidate, self.schema_id), self.schema_id)
        if not result.ok:
            self.dropped += 1
            self._log.debug(f"Dropped invalid {self.schema_id.value}: {result.errors[:3]}")
            return None
        return result.artifact


async def demultiplex(
    chunks: AsyncIterable[Union[str, bytes]],
    schema_id: SchemaId = SchemaId.BLUEPRINT_SLIDE,
) -> AsyncIterator[Dict[str, Any]]:
    """Yield validated partial artifacts as soon as each one is complete.

    The source is closed when this generator finishes or is closed early.
    """
    demux = StreamDemultiplexer(schema_id)
    try:
        async for chunk in chunks:
            for artifact in demux.feed(chunk):
                yield artifact
        for artifact in demux.close():
            yield artifact
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()
