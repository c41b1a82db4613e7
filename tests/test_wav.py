import struct
import wave

import pytest

from damctools.wav import WavFormatError, load_wav


def _write_with_wave(path, samples, rate, channels=1, width=2):
    with wave.open(str(path), "wb") as out:
        out.setnchannels(channels)
        out.setsampwidth(width)
        out.setframerate(rate)
        out.writeframes(b"".join(struct.pack("<h", s) for s in samples) if width == 2 else bytes(samples))


def _chunk(chunk_id, body):
    return chunk_id + struct.pack("<I", len(body)) + body


def _fmt(channels=1, rate=48000, bits=16):
    block = channels * bits // 8
    return _chunk(b"fmt ", struct.pack("<HHIIHH", 1, channels, rate, rate * block, block, bits))


def _data(samples):
    return _chunk(b"data", b"".join(struct.pack("<h", s) for s in samples))


def _riff(*chunks):
    body = b"WAVE" + b"".join(chunks)
    return b"RIFF" + struct.pack("<I", len(body)) + body


def test_round_trip_with_standard_writer(tmp_path):
    path = tmp_path / "pulse.wav"
    samples = [0, 1, -1, 32767, -32768, 1234, -4321]
    _write_with_wave(path, samples, 44100)
    assert load_wav(path) == (samples, 44100)


def test_unknown_chunks_are_skipped(tmp_path):
    path = tmp_path / "junk.wav"
    path.write_bytes(_riff(_chunk(b"JUNK", b"\x00" * 12), _fmt(rate=22050), _chunk(b"LIST", b"abcd"), _data([5, -5])))
    assert load_wav(path) == ([5, -5], 22050)


def test_stereo_is_rejected(tmp_path):
    path = tmp_path / "stereo.wav"
    path.write_bytes(_riff(_fmt(channels=2), _data([1, 2])))
    with pytest.raises(WavFormatError):
        load_wav(path)


def test_eight_bit_is_rejected(tmp_path):
    path = tmp_path / "eight.wav"
    _write_with_wave(path, [1, 2, 3, 4], 8000, width=1)
    with pytest.raises(WavFormatError):
        load_wav(path)


def test_data_before_format_is_rejected(tmp_path):
    path = tmp_path / "order.wav"
    path.write_bytes(_riff(_data([1, 2]), _fmt()))
    with pytest.raises(WavFormatError):
        load_wav(path)


def test_missing_data_is_rejected(tmp_path):
    path = tmp_path / "nodata.wav"
    path.write_bytes(_riff(_fmt()))
    with pytest.raises(WavFormatError):
        load_wav(path)


def test_empty_data_chunk_then_real_data(tmp_path):
    path = tmp_path / "twodata.wav"
    path.write_bytes(_riff(_fmt(rate=16000), _chunk(b"data", b""), _data([7, 8, 9])))
    assert load_wav(path) == ([7, 8, 9], 16000)


def test_truncated_data_is_zero_padded(tmp_path):
    path = tmp_path / "short.wav"
    body = struct.pack("<hh", 11, -11)
    header = b"data" + struct.pack("<I", 8)
    path.write_bytes(_riff(_fmt(), header + body))
    samples, _ = load_wav(path)
    assert samples[:2] == [11, -11]
    assert samples[2:] == [0, 0]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_wav(tmp_path / "absent.wav")


def test_format_error_is_value_error(tmp_path):
    path = tmp_path / "empty.wav"
    path.write_bytes(b"")
    with pytest.raises(ValueError):
        load_wav(path)