"""RIFF/WAVE container for the headerless PCM returned by the speech model."""

from __future__ import annotations
import re
import struct

WAV_MEDIA_TYPE = "audio/wav"
WAV_HEADER_SIZE = 44

# RIFF header up to and including the data chunk size; all fields little-endian
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_WHITESPACE = re.compile(r"\s+")


def build_wav(samples: bytes, sample_rate: int = 24000, channels: int = 1, bits_per_sample: int = 16) -> bytes:
	"""Prefix raw PCM ``samples`` with a 44-byte WAVE header.

	The samples are copied verbatim; their encoding is assumed to match the
	given rate, channel count and sample width.
	"""
	if not isinstance(samples, (bytes, bytearray, memoryview)):
		raise TypeError(f"samples must be bytes, not {type(samples).__name__}")
	data = bytes(samples)
	bytes_per_sample = bits_per_sample // 8
	block_align = channels * bytes_per_sample
	header = _HEADER.pack(
		b"RIFF",
		36 + len(data),
		b"WAVE",
		b"fmt ",
		16,  # fmt chunk size
		1,  # PCM
		channels,
		sample_rate,
		sample_rate * block_align,
		block_align,
		bits_per_sample,
		b"data",
		len(data),
	)
	return header + data


def download_filename(section_title: str) -> str:
	return f"{_WHITESPACE.sub('_', section_title)}_audio.wav"
