"""Loading of mono 16-bit PCM WAV files."""

from __future__ import annotations

import os
import struct
import sys
from array import array
from typing import BinaryIO

_CHUNK_HEADER = struct.Struct("<4sI")
_FORMAT = struct.Struct("<HHIIHH")


class WavFormatError(ValueError):
    """Raised when a WAV file cannot be loaded as mono 16-bit audio."""


def load_wav(path: str | os.PathLike) -> tuple[list[int], int]:
    """Load a mono 16-bit WAV file and return ``(samples, sample_rate)``.

    Chunks are read in order until a non-empty data chunk is found;
    unknown chunks are skipped.
    """
    with open(path, "rb") as stream:
        return _read_chunks(stream)


def _read_chunks(stream: BinaryIO) -> tuple[list[int], int]:
    channels = bits = sample_rate = None

    while True:
        header = stream.read(_CHUNK_HEADER.size)
        if len(header) < _CHUNK_HEADER.size:
            raise WavFormatError("no audio data found")
        chunk_id, size = _CHUNK_HEADER.unpack(header)

        if chunk_id == b"RIFF":
            stream.read(4)  # RIFF form type
        elif chunk_id == b"fmt ":
            body = stream.read(size)
            if len(body) < _FORMAT.size:
                raise WavFormatError("truncated format chunk")
            _tag, channels, sample_rate, _rate, _align, bits = _FORMAT.unpack_from(body)
            if channels != 1 or bits != 16:
                raise WavFormatError(
                    f"Bad channel number {channels} or bit per sample {bits}"
                )
        elif chunk_id == b"data":
            if channels is None:
                raise WavFormatError("data chunk found before format chunk")
            count = size // (channels * bits // 8)
            raw = stream.read(count * 2)
            samples = array("h")
            samples.frombytes(raw[: len(raw) - len(raw) % 2])
            if sys.byteorder == "big":
                samples.byteswap()
            result = samples.tolist()
            result.extend([0] * (count - len(result)))
            if result:
                return result, sample_rate
        else:
            stream.seek(size, os.SEEK_CUR)